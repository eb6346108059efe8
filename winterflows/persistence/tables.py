"""SQLModel tables backing the SQL workflow repository."""

from typing import Optional

from sqlalchemy import JSON, BigInteger, Column
from sqlmodel import Field, SQLModel


class WorkflowRow(SQLModel, table=True):
    """Workflow definition as written by the editing layer."""

    __tablename__ = "workflows"

    id: int = Field(primary_key=True)
    name: str = ""
    creator_user_id: str = ""
    access_token: Optional[str] = None
    steps: list = Field(default_factory=list, sa_column=Column(JSON))


class ExecutionRow(SQLModel, table=True):
    """Running workflow instance with its step snapshot and cursor."""

    __tablename__ = "workflow_executions"

    id: Optional[int] = Field(default=None, primary_key=True)
    workflow_id: int = Field(index=True)
    steps: list = Field(default_factory=list, sa_column=Column(JSON))
    step_index: int = 0
    state: dict = Field(default_factory=dict, sa_column=Column(JSON))


class TriggerRow(SQLModel, table=True):
    """Binding from a correlation key to a trigger function."""

    __tablename__ = "triggers"

    id: Optional[int] = Field(default=None, primary_key=True)
    type: str = Field(index=True)
    correlation: str = Field(default="", index=True)
    fire_at: Optional[int] = Field(default=None, sa_column=Column(BigInteger))
    recurring: bool = False
    workflow_id: Optional[int] = Field(default=None, index=True)
    execution_id: Optional[int] = Field(default=None, index=True)
    func: str
    details: Optional[str] = None
