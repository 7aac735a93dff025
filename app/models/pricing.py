from datetime import datetime
from app.extensions import db

HSK_LEVELS = range(1, 7)


class LevelPrice(db.Model):
    __tablename__ = "level_price"

    id = db.Column(db.Integer, primary_key=True)
    level = db.Column(db.Integer, unique=True, nullable=False)
    price = db.Column(db.Float, nullable=False, default=0.0)


class Bundle(db.Model):
    __tablename__ = "bundle"

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(50), unique=True, nullable=False)
    name_en = db.Column(db.String(120), nullable=False)
    name_sc = db.Column(db.String(120), nullable=False)
    name_tc = db.Column(db.String(120), nullable=False)
    description_en = db.Column(db.Text, nullable=True)
    description_sc = db.Column(db.Text, nullable=True)
    description_tc = db.Column(db.Text, nullable=True)
    icon = db.Column(db.String(50), nullable=True)
    price = db.Column(db.Float, nullable=False, default=0.0)
    is_active = db.Column(db.Boolean, default=True)
    sort_order = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    levels = db.relationship(
        "BundleLevel",
        back_populates="bundle",
        cascade="all, delete-orphan",
        order_by="BundleLevel.level"
    )

    @property
    def level_numbers(self):
        return [bl.level for bl in self.levels]

    def __repr__(self):
        return f"<Bundle {self.code}>"


class BundleLevel(db.Model):
    __tablename__ = "bundle_level"
    __table_args__ = (db.UniqueConstraint("bundle_id", "level"),)

    id = db.Column(db.Integer, primary_key=True)
    bundle_id = db.Column(db.Integer, db.ForeignKey("bundle.id", ondelete="CASCADE"), nullable=False)
    level = db.Column(db.Integer, nullable=False)

    bundle = db.relationship("Bundle", back_populates="levels")


class Purchase(db.Model):
    __tablename__ = "purchase"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("user.id", ondelete="CASCADE"), nullable=False)
    product_type = db.Column(db.Enum("level", "bundle", name="product_type"), nullable=False)
    # level number or bundle code, as sent by the checkout widget
    product_id = db.Column(db.String(50), nullable=False)
    amount = db.Column(db.Float, nullable=False)
    paypal_order_id = db.Column(db.String(120), unique=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    user = db.relationship("User", back_populates="purchases")
