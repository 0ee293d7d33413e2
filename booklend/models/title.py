from datetime import datetime
from booklend.extensions import db


class Title(db.Model):
    __tablename__ = "titles"

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(200), nullable=False, unique=True, index=True)
    author = db.Column(db.String(200), nullable=False, index=True)
    details = db.Column(db.Text, nullable=False)
    price = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    course = db.Column(db.String(100), nullable=False)
    branch = db.Column(db.String(100), nullable=False)
    # registered copies; also the compare-and-swap token for stock updates
    copy_count = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    copies = db.relationship("Copy", back_populates="title", order_by="Copy.id", lazy="select")

    def to_dict(self, with_copies: bool = False):
        data = {
            "id": self.id,
            "title": self.title,
            "author": self.author,
            "details": self.details,
            "price": float(self.price),
            "course": self.course,
            "branch": self.branch,
        }
        if with_copies:
            data["copies"] = [c.to_dict() for c in self.copies]
        return data
