from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from cardsmith.models import Deck


class DeckRepository:
    def __init__(self, session: Session):
        self.session = session

    def get_by_id(self, deck_id: int) -> Optional[Deck]:
        return self.session.scalar(select(Deck).where(Deck.id == deck_id))

    def get_owned(self, deck_id: int, user_id: UUID) -> Optional[Deck]:
        stmt = select(Deck).where(Deck.id == deck_id, Deck.user_id == user_id)
        return self.session.scalar(stmt)

    def create(self, user_id: UUID, name: str) -> Deck:
        deck = Deck(user_id=user_id, name=name)
        self.session.add(deck)
        self.session.flush()
        return deck
