from sqlalchemy import Column, String, DateTime, Boolean
from sqlalchemy.orm import declarative_base
from datetime import datetime
import uuid

Base = declarative_base()


class TeamMemberModel(Base):
    """
    团队成员
    Maintained by the team-management screens; read-only to the commission engine.
    Only rows with role 'health_rep' and a linked user_id earn commission.
    """
    __tablename__ = "team_members"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), unique=True, index=True)  # auth user; null until the invite is accepted
    full_name = Column(String(120))
    role = Column(String(30), index=True)  # admin, manager, counter_staff, health_rep
    phone = Column(String(30))
    avatar_url = Column(String(255))
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
