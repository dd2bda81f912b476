import logging
import random
from datetime import timedelta
from typing import Any, Dict, List, Optional

from pydantic import BaseModel
from sqlmodel import Session, col, func, select

from services.db.models import AccountMergeLog, BlockedUser, City, Report, TypingIndicator, User
from services.errors import Forbidden, NotFound, UsernameTaken, ValidationError
from services.utils.timezone import make_aware, now
from services.utils.validation import get_user_or_404

log = logging.getLogger(__name__)

USERNAME_MAX = 64
ACTIVE_WINDOW_MINUTES = 10
ORPHAN_GUEST_DAYS = 30


class UserProfileUpdate(BaseModel):
    """Profile fields a user may edit. Unset fields are left untouched."""

    username: Optional[str] = None
    avatar_url: Optional[str] = None
    bio: Optional[str] = None
    whatsapp_number: Optional[str] = None
    date_of_birth: Optional[str] = None
    location: Optional[str] = None


def author_summary(user: Optional[User]) -> Optional[Dict[str, Any]]:
    if user is None:
        return None
    return {"id": user.id, "username": user.username, "avatar_url": user.avatar_url}


class UserService:
    def __init__(self, session: Session, active_window_minutes: int = ACTIVE_WINDOW_MINUTES):
        self.session = session
        self.active_window = timedelta(minutes=active_window_minutes)

    # --- lookups ---

    def get_user(self, user_id: int) -> Optional[User]:
        return self.session.get(User, user_id)

    def get_by_auth_id(self, auth_id: str) -> Optional[User]:
        return self.session.exec(select(User).where(User.auth_id == auth_id)).first()

    def get_by_session_id(self, session_id: str) -> Optional[User]:
        return self.session.exec(select(User).where(User.session_id == session_id)).first()

    # --- username availability ---

    def _check_username(self, desired: str, exclude_user_id: Optional[int] = None) -> None:
        """Raise UsernameTaken with a free suggestion when ``desired`` is in use."""
        stmt = select(User.username)
        if exclude_user_id is not None:
            stmt = stmt.where(User.id != exclude_user_id)
        existing = {name.lower() for name in self.session.exec(stmt).all()}

        if desired.lower() not in existing:
            return

        counter = 1
        suggestion = f"{desired}-{counter}"
        while suggestion.lower() in existing:
            counter += 1
            suggestion = f"{desired}-{counter}"
            if counter > 99:
                suggestion = f"{desired}-{random.randint(0, 9999)}"
                break

        raise UsernameTaken(desired, suggestion)

    @staticmethod
    def _clean_username(username: str) -> str:
        name = (username or "").strip()
        if not name:
            raise ValidationError("username", "username must not be empty", limit=USERNAME_MAX, actual=0)
        if len(name) > USERNAME_MAX:
            raise ValidationError(
                "username",
                f"username must be {USERNAME_MAX} characters or less",
                limit=USERNAME_MAX,
                actual=len(name),
            )
        return name

    # --- identity resolution ---

    def resolve_or_create_guest(self, session_token: str, proposed_username: str) -> int:
        """Return the guest user for ``session_token``, creating it on first sight.

        An existing guest that proposes a different username is renamed, under
        the same availability check as a new guest.
        """
        username = self._clean_username(proposed_username)
        existing = self.get_by_session_id(session_token)

        if existing:
            if existing.username != username:
                self._check_username(username, exclude_user_id=existing.id)
                existing.username = username
                self.session.add(existing)
                self.session.commit()
            return existing.id

        self._check_username(username)

        user = User(session_id=session_token, username=username, cities_visited=[])
        self.session.add(user)
        self.session.commit()
        self.session.refresh(user)

        log.info(f"Created guest user {user.id} ({username})")
        return user.id

    def resolve_or_create_authenticated(
        self,
        external_id: str,
        username: str,
        avatar_url: Optional[str] = None,
        email: Optional[str] = None,
        bio: Optional[str] = None,
        whatsapp_number: Optional[str] = None,
    ) -> int:
        """Upsert the user owning ``external_id``; only provided fields are patched."""
        username = self._clean_username(username)
        optional = {
            "avatar_url": avatar_url,
            "email": email,
            "bio": bio,
            "whatsapp_number": whatsapp_number,
        }
        existing = self.get_by_auth_id(external_id)

        if existing:
            existing.username = username
            for field, value in optional.items():
                if value is not None:
                    setattr(existing, field, value)
            self.session.add(existing)
            self.session.commit()
            return existing.id

        user = User(
            auth_id=external_id,
            username=username,
            cities_visited=[],
            email_notifications=False,
            browser_notifications=False,
            **{k: v for k, v in optional.items() if v is not None},
        )
        self.session.add(user)
        self.session.commit()
        self.session.refresh(user)

        log.info(f"Created authenticated user {user.id} for {external_id}")
        return user.id

    def migrate_guest_to_authenticated(
        self,
        guest_user_id: int,
        external_id: str,
        username: str,
        avatar_url: Optional[str] = None,
        email: Optional[str] = None,
        operator: str = "system",
    ) -> int:
        """
        Attach ``external_id`` to a guest.

        Without an existing account for ``external_id`` the guest is converted
        in place. Otherwise the guest's visited cities are merged into that
        account and the guest record is deleted. Patch, delete and merge log
        share one commit.
        """
        guest = self.session.get(User, guest_user_id)
        if not guest:
            raise NotFound("Anonymous user not found", user_id=guest_user_id)
        if guest.is_authenticated:
            raise Forbidden("Only guest accounts can be migrated", user_id=guest_user_id)

        username = self._clean_username(username)
        target = self.get_by_auth_id(external_id)

        if target is None:
            guest.auth_id = external_id
            guest.session_id = None
            guest.username = username
            if avatar_url is not None:
                guest.avatar_url = avatar_url
            if email is not None:
                guest.email = email
            self.session.add(guest)
            self.session.commit()

            log.info(f"Converted guest {guest.id} to authenticated ({external_id})")
            return guest.id

        log.info(f"🔄 Merging guest {guest.id} -> {target.id}")

        merged = list(target.cities_visited)
        for city_id in guest.cities_visited:
            if city_id not in merged:
                merged.append(city_id)
        added = len(merged) - len(target.cities_visited)

        target.cities_visited = merged
        if target.current_city_id is None:
            target.current_city_id = guest.current_city_id
        self.session.add(target)

        # typing rows would otherwise point at a deleted user
        for indicator in self.session.exec(
            select(TypingIndicator).where(TypingIndicator.user_id == guest.id)
        ).all():
            self.session.delete(indicator)
        self._move_safety_rows(guest.id, target.id)

        self.session.add(AccountMergeLog(
            source_user_id=guest.id,
            target_user_id=target.id,
            merged_at=now(),
            cities_merged=added,
            data_snapshot={
                "session_id": guest.session_id,
                "username": guest.username,
                "cities_visited": list(guest.cities_visited),
                "current_city_id": guest.current_city_id,
            },
            operator=operator,
        ))
        self.session.delete(guest)
        self.session.commit()

        log.info(f"  - Merged {added} new cities into {target.id}, guest {guest_user_id} deleted")
        return target.id

    def _move_safety_rows(self, user_id: int, target_id: Optional[int]) -> None:
        """
        Repoint block edges and reports from ``user_id`` to ``target_id``.

        With ``target_id=None`` the rows are deleted. Rows that would end up
        pointing a user at themselves, or duplicate an existing edge, are
        deleted too. Nothing is committed here.
        """
        edges = self.session.exec(
            select(BlockedUser).where(
                (BlockedUser.blocker_id == user_id) | (BlockedUser.blocked_id == user_id)
            )
        ).all()
        existing = {
            (e.blocker_id, e.blocked_id)
            for e in self.session.exec(select(BlockedUser)).all()
            if user_id not in (e.blocker_id, e.blocked_id)
        }
        for edge in edges:
            if target_id is None:
                self.session.delete(edge)
                continue
            pair = (
                target_id if edge.blocker_id == user_id else edge.blocker_id,
                target_id if edge.blocked_id == user_id else edge.blocked_id,
            )
            if pair[0] == pair[1] or pair in existing:
                self.session.delete(edge)
                continue
            edge.blocker_id, edge.blocked_id = pair
            existing.add(pair)
            self.session.add(edge)

        reports = self.session.exec(
            select(Report).where(
                (Report.reporter_id == user_id) | (Report.reported_user_id == user_id)
            )
        ).all()
        for report in reports:
            if target_id is None:
                self.session.delete(report)
                continue
            if report.reporter_id == user_id:
                report.reporter_id = target_id
            if report.reported_user_id == user_id:
                report.reported_user_id = target_id
            if report.reporter_id == report.reported_user_id:
                self.session.delete(report)
            else:
                self.session.add(report)

    # --- cities ---

    def add_visited_city(self, user_id: int, city_id: int) -> None:
        user = get_user_or_404(self.session, user_id)
        if city_id not in user.cities_visited:
            user.cities_visited = [*user.cities_visited, city_id]
            self.session.add(user)
            self.session.commit()

    def update_current_city(self, user_id: int, city_id: int) -> None:
        user = get_user_or_404(self.session, user_id)
        user.current_city_id = city_id
        if city_id not in user.cities_visited:
            user.cities_visited = [*user.cities_visited, city_id]
        self.session.add(user)
        self.session.commit()

    def join_city(self, user_id: int, city_id: int) -> City:
        """Set the current city and record it as visited in one write."""
        city = self.session.get(City, city_id)
        if not city:
            raise NotFound("City not found", city_id=city_id)
        self.update_current_city(user_id, city_id)
        return city

    def get_user_current_city(self, user_id: int) -> Optional[City]:
        user = self.session.get(User, user_id)
        if not user or user.current_city_id is None:
            return None
        return self.session.get(City, user.current_city_id)

    # --- profile ---

    def update_profile(self, user_id: int, update: UserProfileUpdate) -> User:
        user = get_user_or_404(self.session, user_id)
        fields = update.model_dump(exclude_unset=True, exclude_none=True)
        if "username" in fields:
            fields["username"] = self._clean_username(fields["username"])
        for field, value in fields.items():
            setattr(user, field, value)
        self.session.add(user)
        self.session.commit()
        self.session.refresh(user)
        return user

    def update_notification_preferences(
        self,
        actor_id: int,
        user_id: int,
        email_notifications: Optional[bool] = None,
        browser_notifications: Optional[bool] = None,
    ) -> User:
        if actor_id != user_id:
            raise Forbidden("You can only update your own notification preferences")
        user = get_user_or_404(self.session, user_id)
        if not user.is_authenticated:
            raise Forbidden("You must be signed in to update notification preferences")

        if email_notifications is not None:
            user.email_notifications = email_notifications
        if browser_notifications is not None:
            user.browser_notifications = browser_notifications
        self.session.add(user)
        self.session.commit()
        self.session.refresh(user)
        return user

    def get_user_profile(self, user_id: int) -> Optional[Dict[str, Any]]:
        user = self.session.get(User, user_id)
        if not user:
            return None
        cities = [self.session.get(City, cid) for cid in user.cities_visited]
        return {"user": user, "cities": [c for c in cities if c is not None]}

    def search_users(self, term: str) -> List[User]:
        term = (term or "").strip().lower()
        users = self.session.exec(select(User).where(col(User.auth_id).is_not(None))).all()
        return [u for u in users if term in u.username.lower()]

    # --- presence ---

    def update_last_seen(self, user_id: int) -> None:
        user = get_user_or_404(self.session, user_id)
        user.last_seen = now()
        self.session.add(user)
        self.session.commit()

    def _is_active(self, user: User, cutoff) -> bool:
        return user.last_seen is not None and make_aware(user.last_seen) > cutoff

    def count_active_by_city(self, city_ids: List[int]) -> Dict[int, int]:
        """Active users per current city; cities with nobody around map to 0."""
        counts = {city_id: 0 for city_id in city_ids}
        if not counts:
            return counts
        cutoff = now() - self.active_window
        users = self.session.exec(
            select(User).where(col(User.current_city_id).in_(list(counts)))
        ).all()
        for user in users:
            if self._is_active(user, cutoff):
                counts[user.current_city_id] += 1
        return counts

    def get_active_city_users(self, city_id: int) -> int:
        return self.count_active_by_city([city_id])[city_id]

    def get_total_active_users(self) -> int:
        cutoff = now() - self.active_window
        users = self.session.exec(select(User).where(col(User.last_seen).is_not(None))).all()
        return sum(1 for u in users if self._is_active(u, cutoff))

    def count_authenticated_users(self) -> int:
        return self.session.exec(
            select(func.count()).select_from(User).where(col(User.auth_id).is_not(None))
        ).one()

    # --- account deletion ---

    def anonymize_user(self, external_id: str) -> Optional[int]:
        """Canonical account deletion: strip identity, keep authored content."""
        user = self.get_by_auth_id(external_id)
        if not user:
            log.info(f"User with auth_id {external_id} not found for anonymization")
            return None

        user.auth_id = None
        user.session_id = None
        user.username = f"[deleted-user-{str(user.id)[-8:].rjust(8, '0')}]"
        user.avatar_url = None
        user.bio = None
        user.whatsapp_number = None
        user.email = None
        user.date_of_birth = None
        user.location = None
        user.email_notifications = False
        user.browser_notifications = False
        self.session.add(user)
        self.session.commit()

        log.info(f"User {external_id} anonymized (id={user.id})")
        return user.id

    def hard_delete_user(self, external_id: str) -> Optional[int]:
        """
        Irreversible. Block edges, reports and typing rows go with the user.
        Messages, comments and posts keep dangling author ids.
        """
        user = self.get_by_auth_id(external_id)
        if not user:
            log.info(f"User with auth_id {external_id} not found for deletion")
            return None

        user_id = user.id
        self._move_safety_rows(user_id, None)
        for indicator in self.session.exec(
            select(TypingIndicator).where(TypingIndicator.user_id == user_id)
        ).all():
            self.session.delete(indicator)
        self.session.delete(user)
        self.session.commit()

        log.warning(f"User {external_id} hard deleted (id={user_id})")
        return user_id

    # --- diagnostics ---

    def find_orphaned_guest_users(self, days: int = ORPHAN_GUEST_DAYS) -> Dict[str, Any]:
        cutoff = now() - timedelta(days=days)
        guests = self.session.exec(
            select(User).where(col(User.auth_id).is_(None), col(User.session_id).is_not(None))
        ).all()
        orphaned = [
            u for u in guests
            if u.last_seen is None or make_aware(u.last_seen) < cutoff
        ]
        return {"count": len(orphaned), "users": orphaned[:10]}
