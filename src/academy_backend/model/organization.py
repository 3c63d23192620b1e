from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, func
from sqlalchemy.orm import relationship

from .base import Base, new_id


class Rank(Base):
    __tablename__ = 'rank'

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(255), unique=True, nullable=False)
    order_index = Column(Integer, nullable=False, server_default="0")
    category = Column(String(64))

    policies = relationship('RankRolePolicy', back_populates='rank', cascade='all, delete-orphan')


class RankRolePolicy(Base):
    __tablename__ = 'rank_role_policy'

    rank_id = Column(ForeignKey('rank.id', ondelete='CASCADE'), primary_key=True, nullable=False)
    role_id = Column(ForeignKey('role.id', ondelete='CASCADE'), primary_key=True, nullable=False, index=True)
    created_at = Column(DateTime(True), nullable=False, server_default=func.now())

    rank = relationship('Rank', back_populates='policies')


class Staff(Base):
    """Staff member as seen by the access layer: only the user and rank links are read."""
    __tablename__ = 'staff'

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(ForeignKey('user.id', ondelete='CASCADE'), unique=True)
    rank_id = Column(ForeignKey('rank.id', ondelete='SET NULL'))
