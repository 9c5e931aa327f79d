"""
Canonical Identity Helpers

A lead's identity is the pair (platform, provider_lead_id):
- META: leadgen_id
- GOOGLE: resource_name of the lead form submission

Email and phone are contact fields, not identity. They stay unique in the
store, but two sightings with the same provider id are the same lead even
when their contact fields differ.
"""
from typing import Any, Optional, Sequence

from leadsync.models.schemas.leads import Platform


def get_canonical_id(platform: Platform, provider_lead_id: str) -> str:
    """
    Build a printable canonical ID for a lead identity.

    Examples:
        >>> get_canonical_id(Platform.META, '1234')
        'META:1234'

        >>> get_canonical_id(Platform.GOOGLE, 'customers/1/leadFormSubmissionData/2')
        'GOOGLE:customers/1/leadFormSubmissionData/2'
    """
    return f"{Platform(platform).value}:{provider_lead_id}"


def first_value(values: Any) -> Optional[str]:
    """
    First element of a provider value list, or None.

    META sends every answer as a list (`values: ["alice@example.com"]`);
    anything that isn't a non-empty list yields None.
    """
    if not isinstance(values, Sequence) or isinstance(values, (str, bytes)) or not values:
        return None
    value = values[0]
    return None if value is None else str(value)
