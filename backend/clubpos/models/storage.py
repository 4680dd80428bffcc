from __future__ import annotations

from ..extensions import db


class KeyValueRecord(db.Model):
    """
    One serialized state document (tables, settings, transactions, closures).

    WHY: The engine persists through a plain get/set contract; this table is
    the SQL backing for that contract.
    """
    __tablename__ = "kv_records"

    key = db.Column(db.String(128), primary_key=True)
    value = db.Column(db.Text, nullable=False)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    __mapper_args__ = {"version_id_col": version_id}
