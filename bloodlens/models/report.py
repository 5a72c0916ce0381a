from sqlalchemy import Column, String, Float, DateTime, Text, JSON, ForeignKey, func
from bloodlens.core.database import Base


class Report(Base):
    """Persisted blood report. Lifecycle is modelled in services.report_state."""
    __tablename__ = "reports"
    __mapper_args__ = {"eager_defaults": True}

    report_id = Column(String(36), primary_key=True)
    user_id = Column(String(128), ForeignKey("users.uid"), nullable=False, index=True)
    file_name = Column(String(255))

    # processing -> complete | error
    status = Column(String(20), nullable=False, default="processing")

    # Analysis, present only when complete
    summary = Column(Text)
    recommendation = Column(Text)
    overall_score = Column(Float)
    risk_level = Column(String(20))
    tests = Column(JSON)
    health_goals = Column(JSON)
    nutrition = Column(JSON)
    lifestyle = Column(JSON)
    supplements = Column(JSON)
    future_predictions = Column(JSON)
    medication_alerts = Column(JSON)

    share_id = Column(String(36), unique=True, index=True)

    # Present only when status == error
    error = Column(Text)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    def __repr__(self):
        return f"<Report {self.report_id} - {self.status}>"
