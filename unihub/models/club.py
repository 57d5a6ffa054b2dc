"""
Clubs and their events. Both are owned by the club head (head_id).
Only ids are stored; joins happen in the service layer.
"""

from sqlalchemy import Column, ForeignKey, Integer, String

from unihub.db.base import Base, TimestampMixin


class Club(Base, TimestampMixin):
    __tablename__ = "clubs"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), unique=True, nullable=False)
    head_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    goal = Column(String(1000), nullable=False)
    description = Column(String(2000), nullable=False)

    @property
    def owner_id(self) -> int:
        return self.head_id

    def __repr__(self) -> str:
        return f"<Club(id={self.id}, name={self.name}, head={self.head_id})>"


class Event(Base, TimestampMixin):
    __tablename__ = "events"

    id = Column(Integer, primary_key=True, index=True)
    club_id = Column(Integer, ForeignKey("clubs.id"), nullable=False, index=True)
    head_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    event_name = Column(String(255), nullable=False)
    event_date = Column(String(50), nullable=False)
    location = Column(String(255), nullable=False)
    short_description = Column(String(1000), nullable=False)

    @property
    def owner_id(self) -> int:
        return self.head_id

    def __repr__(self) -> str:
        return f"<Event(id={self.id}, name={self.event_name}, club={self.club_id})>"
