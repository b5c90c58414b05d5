from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, JSON, func
from sqlalchemy.orm import relationship
from database import Base

# Audit trail of storefront actions (sign-ins, cart changes, orders, menu edits)
class Log(Base):
    __tablename__ = "logs"

    id = Column(Integer, primary_key=True, index=True)
    ts = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    action = Column(String(50), index=True)   # e.g. LOGIN, CART_ADD, ORDER_PLACE
    resource = Column(String(50), index=True) # auth, cart, orders, menu ...
    status = Column(String(20), index=True)   # SUCCESS / FAIL
    ip = Column(String(64), nullable=True)

    # Free-form context of the event
    meta = Column(JSON, nullable=True)

    user = relationship("User", lazy="joined", uselist=False)
