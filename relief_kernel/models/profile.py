"""Applicant Profile: identity and household attributes."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from relief_kernel.models.catalog import YesNo


class Address(BaseModel):
    """A postal address. Used for both primary and mailing addresses."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    country: Optional[str] = None
    street1: Optional[str] = None
    street2: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip: Optional[str] = None


class Profile(BaseModel):
    """
    The applicant's profile.

    Every field is optional: the same shape describes the stored base profile
    and the partial overrides collected into a draft. Dates are kept as the
    ISO strings the applicant supplied; parsing happens at decision time.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    first_name: Optional[str] = None
    middle_name: Optional[str] = None
    last_name: Optional[str] = None
    suffix: Optional[str] = None
    email: Optional[str] = None
    mobile_number: Optional[str] = None
    primary_address: Optional[Address] = None
    mailing_address: Optional[Address] = None

    employment_start_date: Optional[str] = None     # YYYY-MM-DD
    eligibility_type: Optional[str] = None
    household_income: Optional[float] = Field(default=None, ge=0)
    household_size: Optional[int] = Field(default=None, ge=0)
    homeowner: Optional[YesNo] = None
    preferred_language: Optional[str] = None

    # Acknowledgements count only when explicitly True.
    ack_policies: Optional[bool] = None
    comm_consent: Optional[bool] = None
    info_correct: Optional[bool] = None
