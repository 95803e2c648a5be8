from sqlalchemy import Column, String
from sqlalchemy.orm import relationship
from boatyard.database import Base
import uuid

class Site(Base):
    __tablename__ = "sites"

    id = Column(String(36), primary_key=True, index=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(255), nullable=False, unique=True, index=True)
    address = Column(String(500), nullable=True)

    locations = relationship("Location", back_populates="site")

    def __repr__(self):
        return f"<Site(id='{self.id}', name='{self.name}')>"
