from datetime import datetime, timezone

from sqlalchemy import Column, Integer, BigInteger, String, DateTime, Index
from sqlalchemy.orm import Session, declared_attr

from database import Base


class BaseModelCU(Base):
    __abstract__ = True

    id = Column(Integer, primary_key=True, autoincrement=True)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc), nullable=False)
    updated_at = Column(DateTime, nullable=True)

    @declared_attr
    def __table_args__(cls):
        if cls.__dict__.get('__abstract__', False):
            return ()  # No table args for abstract base class
        return (
            Index(f"idx_{cls.__tablename__}_created_at", "created_at"),
        )

    @classmethod
    def find_one(cls, db: Session, **filters):
        """Query a single record matching the given column values"""
        query = db.query(cls)
        for key, value in filters.items():
            query = query.filter(getattr(cls, key) == value)
        return query.first()

    def save(self, db: Session):
        """Save the record with updated_at timestamp"""
        self.updated_at = datetime.now(timezone.utc)
        db.add(self)
        db.commit()
        db.refresh(self)
        return self

    def update(self, db: Session, **kwargs):
        """Update the record with updated_at timestamp"""
        for key, value in kwargs.items():
            setattr(self, key, value)
        return self.save(db)


class AvatarRecord(BaseModelCU):
    __tablename__ = "avatars"

    token_id = Column(BigInteger, unique=True, index=True, nullable=False)  # one row per token
    image_url = Column(String, nullable=False)
