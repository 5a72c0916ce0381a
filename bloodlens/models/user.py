from sqlalchemy import Column, String, Integer, Boolean, DateTime, Text, func
from bloodlens.core.database import Base


class User(Base):
    """User record, keyed by the identity provider's subject id"""
    __tablename__ = "users"
    __mapper_args__ = {"eager_defaults": True}

    uid = Column(String(128), primary_key=True)
    email = Column(String(255))

    # Subscription
    pro = Column(Boolean, nullable=False, default=False)
    plan = Column(String(50))
    sub_id = Column(String(64), index=True)
    sub_start = Column(DateTime(timezone=True))

    # Free tier counter, only meaningful while pro is False
    free_uploads_used = Column(Integer, nullable=False, default=0)

    # Profile context used to personalize analyses
    current_medications = Column(Text)
    chronic_conditions = Column(Text)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    def to_dict(self) -> dict:
        return {
            "uid": self.uid,
            "email": self.email,
            "pro": bool(self.pro),
            "plan": self.plan,
            "subId": self.sub_id,
            "subStart": self.sub_start.isoformat() if self.sub_start else None,
            "freeUploadsUsed": self.free_uploads_used or 0,
            "currentMedications": self.current_medications or "",
            "chronicConditions": self.chronic_conditions or "",
        }

    def __repr__(self):
        return f"<User {self.uid} - {'pro' if self.pro else 'free'}>"
