"""Contact field vocabulary, UI categories, and HubSpot property mapping."""

from enum import Enum


class ContactField(str, Enum):
    """The only fields ever extracted from transcripts."""

    FIRST_NAME = "first_name"
    LAST_NAME = "last_name"
    EMAIL = "email"
    PHONE_NUMBER = "phone_number"
    CITY = "city"
    STATE = "state"
    COUNTRY = "country"
    POSTAL_CODE = "postal_code"
    JOB_TITLE = "job_title"
    COMPANY_NAME = "company_name"
    DATE_OF_BIRTH = "date_of_birth"
    MARITAL_STATUS = "marital_status"
    TIME_ZONE = "time_zone"


CONTACT_FIELDS: tuple[str, ...] = tuple(field.value for field in ContactField)

CONTACT_FIELD_SET = frozenset(CONTACT_FIELDS)


class ContactCategory(str, Enum):
    """Groups of fields shown together for selection."""

    IDENTITY = "identity"
    CONTACT_INFORMATION = "contact_information"
    LOCATION = "location"
    PROFESSION = "profession"
    PERSONAL_INFORMATION = "personal_information"


# Canonical display order; every field belongs to exactly one category
CATEGORY_FIELDS: tuple[tuple[str, tuple[str, ...]], ...] = (
    (
        ContactCategory.IDENTITY.value,
        (
            ContactField.FIRST_NAME.value,
            ContactField.LAST_NAME.value,
            ContactField.DATE_OF_BIRTH.value,
        ),
    ),
    (
        ContactCategory.CONTACT_INFORMATION.value,
        (
            ContactField.EMAIL.value,
            ContactField.PHONE_NUMBER.value,
            ContactField.TIME_ZONE.value,
        ),
    ),
    (
        ContactCategory.LOCATION.value,
        (
            ContactField.CITY.value,
            ContactField.STATE.value,
            ContactField.COUNTRY.value,
            ContactField.POSTAL_CODE.value,
        ),
    ),
    (
        ContactCategory.PROFESSION.value,
        (ContactField.JOB_TITLE.value, ContactField.COMPANY_NAME.value),
    ),
    (
        ContactCategory.PERSONAL_INFORMATION.value,
        (ContactField.MARITAL_STATUS.value,),
    ),
)

# Internal field name -> HubSpot contact property key
HUBSPOT_PROPERTY_MAP: dict[str, str] = {
    ContactField.FIRST_NAME.value: "firstname",
    ContactField.LAST_NAME.value: "lastname",
    ContactField.EMAIL.value: "email",
    ContactField.PHONE_NUMBER.value: "phone",
    ContactField.CITY.value: "city",
    ContactField.STATE.value: "state",
    ContactField.COUNTRY.value: "country",
    ContactField.POSTAL_CODE.value: "zip",
    ContactField.JOB_TITLE.value: "jobtitle",
    ContactField.COMPANY_NAME.value: "company",
    ContactField.DATE_OF_BIRTH.value: "dateofbirth",
    ContactField.MARITAL_STATUS.value: "maritalstatus",
    ContactField.TIME_ZONE.value: "timezone",
}

# Properties requested on every HubSpot contact read, in field order
DEFAULT_HUBSPOT_PROPERTIES: tuple[str, ...] = tuple(
    HUBSPOT_PROPERTY_MAP[field] for field in CONTACT_FIELDS
)


def hubspot_property_for(field: str) -> str:
    """Return the HubSpot property key for an internal field name."""
    return HUBSPOT_PROPERTY_MAP.get(field, field)
