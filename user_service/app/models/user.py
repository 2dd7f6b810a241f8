from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from .base import UserServiceBaseModel


class User(UserServiceBaseModel):
    __tablename__ = "users"

    username: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
