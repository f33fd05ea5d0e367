from datetime import datetime, timezone

from ballotbox.extensions import db


def _utcnow():
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Ballot(db.Model):
    __tablename__ = "ballots"

    id = db.Column(db.String(32), primary_key=True)
    # voter code, or phone number when voting by phone
    voter_ref = db.Column(db.String(50), unique=True, nullable=False)
    voter_name = db.Column(db.String(200), nullable=True)
    selections = db.Column(db.JSON, nullable=False)
    note = db.Column(db.Text, nullable=True)
    ip = db.Column(db.String(64), nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=_utcnow)

    def to_record(self):
        return {
            "id": self.id,
            "voterId": self.voter_ref,
            "selections": self.selections,
            "ts": self.created_at.isoformat() + "Z",
            "ip": self.ip or "",
            "note": self.note or "",
        }
