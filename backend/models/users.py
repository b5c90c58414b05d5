from sqlalchemy import Column, Integer, String, Boolean, ForeignKey
from sqlalchemy.orm import relationship
from database import Base

# Represents a user account with authentication details
class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, nullable=False, index=True)
    # Empty for accounts created through a federated identity provider
    password_hash = Column(String, nullable=True)
    full_name = Column(String, nullable=True)
    email_confirmed = Column(Boolean, nullable=False, default=True)
    auth_provider = Column(String, nullable=False, default="email")

    role_record = relationship("UserRole", back_populates="user", uselist=False, cascade="all, delete-orphan")


# Role lookup record, kept apart from the account so it can lag behind sign-up
class UserRole(Base):
    __tablename__ = "user_roles"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False, index=True)
    role = Column(String, nullable=False, default="customer")

    user = relationship("User", back_populates="role_record")
