import logging

from app.core.config import settings
from app.core.errors import StoreError, ValidationError
from app.services.identity_provider import IdentityProvider
from app.store.base import DataStore

logger = logging.getLogger(__name__)

# profiles.phone_number and profiles.first_name widths
MAX_PHONE_LENGTH = 40
MAX_NAME_LENGTH = 100


def split_name(name: str) -> tuple[str, str]:
    """'Ana Maria Silva' -> ('Ana', 'Maria Silva')"""
    first, *rest = name.split()
    return first, " ".join(rest)


def placeholder_email(phone: str) -> str:
    return f"{phone}@{settings.PLACEHOLDER_EMAIL_DOMAIN}"


def get_or_create_user(store: DataStore, provider: IdentityProvider, name, phone) -> tuple[str, bool]:
    """Return (user_id, created) for the passenger owning `phone`.

    An identity-provider conflict is raised as ConflictError rather than resolved
    here: the conflicting account has no profile with this phone, so the caller
    has to reconcile it.
    """
    name = "" if name is None else str(name).strip()
    phone = "" if phone is None else str(phone).strip()
    if not name or not phone:
        raise ValidationError("Name and phone are required")
    if len(phone) > MAX_PHONE_LENGTH or len(name) > MAX_NAME_LENGTH:
        raise ValidationError("Name or phone is too long")

    existing = store.find_profile_by_phone(phone)
    if existing:
        return existing.id, False

    first_name, last_name = split_name(name)
    account = provider.create_account(
        placeholder_email(phone),
        settings.PLACEHOLDER_PASSWORD,
        {
            "first_name": first_name,
            "last_name": last_name,
            "role": "passenger",
            "phone_number": phone,
        },
    )

    try:
        with store.atomic():
            store.update_profile(account.id, {"phone_number": phone})
    except StoreError:
        logger.warning("could not set phone on profile %s", account.id, exc_info=True)

    logger.info("created passenger %s for phone %s", account.id, phone)
    return account.id, True
