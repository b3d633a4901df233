from __future__ import annotations

from ..extensions import db
from shopledger.time_utils import to_utc_z


class BusinessTransaction(db.Model):
    """
    Financial ledger entry (append-only).

    WHY: current_business_cash is a single running number. This table is the
    evidence trail behind it: summing amount over an account should land on
    the stored balance (see ledger_service.reconcile_cash).

    - amount is signed: positive = cash in, negative = cash out
    - Rows are never updated or deleted (except by a full restore/reset)
    """
    __tablename__ = "business_transactions"
    __table_args__ = (
        db.Index("ix_business_tx_account_occurred", "account_id", "occurred_at"),
        db.Index("ix_business_tx_account_type", "account_id", "type"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    account_id = db.Column(db.Integer, db.ForeignKey("accounts.id"), nullable=False, index=True)

    type = db.Column(db.String(32), nullable=False)
    description = db.Column(db.String(512), nullable=False)
    amount = db.Column(db.Float, nullable=False)
    related_document_id = db.Column(db.String(64), nullable=True, index=True)
    notes = db.Column(db.Text, nullable=True)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<BusinessTransaction id={self.id} type={self.type} amount={self.amount}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "account_id": self.account_id,
            "type": self.type,
            "description": self.description,
            "amount": self.amount,
            "related_document_id": self.related_document_id,
            "notes": self.notes,
            "occurred_at": to_utc_z(self.occurred_at),
        }


class ActivityLogEntry(db.Model):
    """Append-only, human-readable audit trail of business events."""
    __tablename__ = "activity_log"
    __table_args__ = (
        db.Index("ix_activity_account_occurred", "account_id", "occurred_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    account_id = db.Column(db.Integer, db.ForeignKey("accounts.id"), nullable=False, index=True)

    type = db.Column(db.String(32), nullable=False, index=True)
    description = db.Column(db.String(512), nullable=False)
    details = db.Column(db.JSON, nullable=True)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<ActivityLogEntry id={self.id} type={self.type}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "account_id": self.account_id,
            "type": self.type,
            "description": self.description,
            "details": self.details or {},
            "occurred_at": to_utc_z(self.occurred_at),
        }
