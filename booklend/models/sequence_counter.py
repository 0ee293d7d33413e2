from booklend.extensions import db


class SequenceCounter(db.Model):
    __tablename__ = "sequence_counters"

    name = db.Column(db.String(50), primary_key=True)
    prefix = db.Column(db.String(2), nullable=False, default="AA")
    number = db.Column(db.Integer, nullable=False, default=0)
