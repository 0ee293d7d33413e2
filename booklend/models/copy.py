from datetime import datetime
from booklend.extensions import db


class Copy(db.Model):
    __tablename__ = "copies"

    # human readable id, e.g. AA-000042
    id = db.Column(db.String(16), primary_key=True)
    title_id = db.Column(db.Integer, db.ForeignKey("titles.id"), nullable=False, index=True)

    issued = db.Column(db.Boolean, nullable=False, default=False, index=True)
    tampered = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    title = db.relationship("Title", back_populates="copies")

    def to_dict(self):
        return {
            "id": self.id,
            "title_id": self.title_id,
            "issued": bool(self.issued),
            "tampered": bool(self.tampered),
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
