from typing import Iterable, List, Optional

from .models import Participant
from .utils import IdentityResolutionError, logger


class ParticipantDirectory:
    """Resolves the configured standup members once and keeps them for the process lifetime."""

    def __init__(self, transport, bot_user_id: str, bot_name: str = ""):
        self.transport = transport
        self.bot_user_id = bot_user_id
        self.bot_name = bot_name
        self._participants: Optional[List[Participant]] = None

    @property
    def participants(self) -> List[Participant]:
        return list(self._participants or [])

    def resolve(self, configured_names: Iterable[str]) -> List[Participant]:
        """Look up each configured name. Unknown users and the bot itself are skipped."""
        if self._participants is not None:
            return self.participants

        resolved = []
        seen = set()
        names = list(configured_names)
        logger.info(f"Checking existence for users: {', '.join(names)}")

        for name in names:
            try:
                participant = self._resolve_one(name)
            except IdentityResolutionError as e:
                logger.warning(f"⚠️ {e}. Skipping.")
                continue

            if participant is None or participant.id in seen:
                continue
            seen.add(participant.id)
            resolved.append(participant)

        self._participants = resolved
        logger.info(f"✅ {len(resolved)} standup members resolved: {', '.join(p.display_name for p in resolved)}")
        return self.participants

    def _resolve_one(self, name: str) -> Optional[Participant]:
        if self.bot_name and name == self.bot_name:
            logger.info(f"Skipping bot user: {name}")
            return None

        user_id = self.transport.resolve_identity(name)
        if not user_id:
            raise IdentityResolutionError(f"User {name!r} not found")

        if user_id == self.bot_user_id:
            logger.info(f"Skipping bot user: {name}")
            return None
        return Participant(id=user_id, display_name=name)
