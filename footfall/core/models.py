"""
SQLAlchemy models for core tables.

area_traffic_analysis is the durable store behind the analysis cache:
one row per rounded coordinate, radius and calendar day.
"""
from sqlalchemy import (
    Column,
    Integer,
    Float,
    Numeric,
    Date,
    DateTime,
    JSON,
    UniqueConstraint,
    Index,
)
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class AreaTrafficAnalysis(Base):
    """
    Cached area traffic analysis.

    venue_data holds the complete serialized analysis; the remaining
    columns duplicate headline figures so they can be queried directly.
    """
    __tablename__ = "area_traffic_analysis"

    id = Column(Integer, primary_key=True, autoincrement=True)
    latitude = Column(Numeric(10, 4), nullable=False)
    longitude = Column(Numeric(11, 4), nullable=False)
    radius_meters = Column(Integer, nullable=False)

    total_venues = Column(Integer, nullable=False, default=0)
    average_daily_visits = Column(Integer, nullable=False, default=0)
    peak_hours = Column(JSON, nullable=True)
    demographic_profile = Column(JSON, nullable=True)
    competition_density = Column(Float, nullable=True)
    opportunity_score = Column(Integer, nullable=True)
    venue_data = Column(JSON, nullable=False)

    analysis_date = Column(Date, nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        UniqueConstraint(
            "latitude", "longitude", "radius_meters", "analysis_date",
            name="uq_area_traffic_analysis_area_day",
        ),
        Index("idx_area_traffic_analysis_location_radius", "latitude", "longitude", "radius_meters"),
        Index("idx_area_traffic_analysis_expires", "expires_at"),
    )

    def __repr__(self):
        return (
            f"<AreaTrafficAnalysis({self.latitude}, {self.longitude}, "
            f"r={self.radius_meters}m, {self.analysis_date})>"
        )
