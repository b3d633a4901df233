from __future__ import annotations

from ..extensions import db
from shopledger.time_utils import to_utc_z


class BackupSnapshot(db.Model):
    """
    Point-in-time copy of one account's business data.

    payload maps collection name -> list of row dicts, plus "settings"
    (the settings row without the backup-config sub-object).
    backup_key is the external identifier ("manual-<ts>", "auto-<ts>").
    """
    __tablename__ = "backup_snapshots"
    __table_args__ = (
        db.Index("ix_backups_account_created", "account_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    TYPE_MANUAL = "manual"
    TYPE_AUTOMATIC = "automatic"

    id = db.Column(db.Integer, primary_key=True)
    account_id = db.Column(db.Integer, db.ForeignKey("accounts.id"), nullable=False, index=True)
    backup_key = db.Column(db.String(64), nullable=False, unique=True)

    description = db.Column(db.String(255), nullable=True)
    backup_type = db.Column(db.String(16), nullable=False, default=TYPE_MANUAL)
    version = db.Column(db.Integer, nullable=False, default=1)
    payload = db.Column(db.JSON, nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<BackupSnapshot id={self.id} key={self.backup_key!r}>"

    def to_dict(self, include_payload: bool = False) -> dict:
        data = {
            "id": self.id,
            "account_id": self.account_id,
            "backup_key": self.backup_key,
            "description": self.description,
            "backup_type": self.backup_type,
            "version": self.version,
            "created_at": to_utc_z(self.created_at),
            "counts": {
                name: len(rows)
                for name, rows in (self.payload or {}).items()
                if isinstance(rows, list)
            },
        }
        if include_payload:
            data["payload"] = self.payload
        return data
