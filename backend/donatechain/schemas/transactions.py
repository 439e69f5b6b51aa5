"""Transaction Schemas: wire contract of the ledger mirror service.

Invariants:
    - amount stays a decimal string end to end (no float coercion)
    - Field names on the wire are camelCase (txHash, totalTransactions); Python side is snake_case
    - Shared by the mirror routes (serialization) and the mirror client (validation)

Design Decisions:
    - One schema module for both sides of the wire: the client cannot drift from the server
    - populate_by_name: routes build models with snake_case, responses serialize by alias
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class MirrorTransaction(_WireModel):
    """One donation as served by the mirror service."""
    id: int
    donor: str = Field(min_length=1)
    amount: str = Field(pattern=r"^\s*[0-9]*(\.[0-9]*)?\s*$")
    currency: str = "ETH"
    message: str = ""
    timestamp: datetime
    tx_hash: str | None = Field(None, alias="txHash")


class TransactionSummary(_WireModel):
    total_transactions: int = Field(alias="totalTransactions")
    total_amount: str = Field(alias="totalAmount")
    currency: str = "ETH"


class TransactionListData(_WireModel):
    transactions: list[MirrorTransaction]
    summary: TransactionSummary | None = None


class TransactionListResponse(_WireModel):
    """GET /transactions envelope. data is absent when success is false."""
    success: bool
    message: str | None = None
    data: TransactionListData | None = None
    error: str | None = None


class TransactionDetailResponse(_WireModel):
    """GET /transactions/{id} envelope."""
    success: bool
    message: str | None = None
    data: MirrorTransaction | None = None
    error: str | None = None


class MirrorErrorResponse(_WireModel):
    """Error envelope (404/500). id or path identifies what was not found."""
    success: bool = False
    error: str
    message: str | None = None
    id: str | None = None
    path: str | None = None


class ServiceInfo(_WireModel):
    success: bool = True
    message: str
    version: str
    endpoints: dict[str, str]
