from ballotbox.extensions import db


class Voter(db.Model):
    __tablename__ = "voters"

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(50), unique=True, nullable=True)
    phone = db.Column(db.String(20), unique=True, nullable=True)
    name = db.Column(db.String(200), nullable=False, default="")
    used = db.Column(db.Boolean, nullable=False, default=False)
    used_at = db.Column(db.DateTime, nullable=True)

    @property
    def ref(self):
        return self.code or self.phone
