# --- cheesy_pos/model/setting.py ---
from ..extensions import db
from sqlalchemy.sql import func


class Setting(db.Model):
    __tablename__ = "settings"

    key = db.Column(db.String(64), primary_key=True)
    value = db.Column(db.Text, nullable=False, default="")
    updated_at = db.Column(db.DateTime, onupdate=func.now(), server_default=func.now())
