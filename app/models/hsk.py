from app.extensions import db


class HSKLevel(db.Model):
    __tablename__ = "hsk_level"

    id = db.Column(db.Integer, primary_key=True)
    level = db.Column(db.Integer, unique=True, nullable=False)

    title_en = db.Column(db.String(120), nullable=False)
    title_sc = db.Column(db.String(120), nullable=False)
    title_tc = db.Column(db.String(120), nullable=False)
    description_en = db.Column(db.Text, nullable=True)
    description_sc = db.Column(db.Text, nullable=True)
    description_tc = db.Column(db.Text, nullable=True)
    word_count = db.Column(db.Integer, nullable=False, default=0)

    def __repr__(self):
        return f"<HSKLevel {self.level}>"
