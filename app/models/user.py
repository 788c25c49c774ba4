from sqlalchemy import String, DateTime, Boolean, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship
from datetime import datetime, timezone
from app.db.session import Base

class User(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(40), primary_key=True)  # userId
    email: Mapped[str] = mapped_column(String(320), unique=True, index=True)
    full_name: Mapped[str] = mapped_column(String(200), default="")
    role: Mapped[str] = mapped_column(String(30), index=True)  # traveler, provider, admin
    password_hash: Mapped[str] = mapped_column(String(255))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    saved_cards: Mapped[list["SavedCard"]] = relationship(
        back_populates="user", cascade="all, delete-orphan", order_by="SavedCard.added_at"
    )


class SavedCard(Base):
    __tablename__ = "saved_cards"

    id: Mapped[str] = mapped_column(String(40), primary_key=True)  # cardId
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    # hex(salt):hex(iv):hex(tag):hex(ct); legacy rows may still hold plaintext until next save
    card_number: Mapped[str] = mapped_column(String(512))
    holder_name: Mapped[str] = mapped_column(String(100))
    expiry_date: Mapped[str] = mapped_column(String(5))  # MM/YY
    last4: Mapped[str] = mapped_column(String(4))
    zip_code: Mapped[str] = mapped_column(String(10), nullable=True)
    added_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    user: Mapped[User] = relationship(back_populates="saved_cards")
