from sqlalchemy import Column, Integer, String

from compliance_core.database import Base


class Building(Base):
    __tablename__ = "buildings"

    id = Column(String, primary_key=True, index=True)
    name = Column(String, nullable=False)
    address = Column(String, nullable=False, default="")
    position = Column(Integer, index=True, nullable=False, default=0)
