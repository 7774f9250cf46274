from .base import ContactsAdapter, ProviderError
from .google_people import GooglePeopleContactsAdapter

__all__ = ["ContactsAdapter", "GooglePeopleContactsAdapter", "ProviderError"]
