"""Program catalogues: the closed vocabularies an application draws from."""

from enum import Enum
from typing import List


class YesNo(str, Enum):
    YES = "Yes"
    NO = "No"


class ExpenseType(str, Enum):
    BASIC_DISASTER_SUPPLIES = "Basic Disaster Supplies"
    FOOD_SPOILAGE = "Food Spoilage"
    MEALS = "Meals"


# Every one of these must carry a positive amount before Expenses is complete.
REQUIRED_EXPENSE_TYPES: List[ExpenseType] = list(ExpenseType)

NAMED_STORM_EVENT = "Tropical Storm/Hurricane"
NOT_LISTED_EVENT = "My disaster is not listed"

DISASTER_EVENTS: List[str] = [
    "Commercial Carrier Accident",
    "Earthquake",
    "Flood",
    "House Fire",
    "Landslide",
    "Sinkhole",
    "Tornado",
    NAMED_STORM_EVENT,
    "Typhoon",
    "Volcanic Eruption",
    "Wildfire",
    "Winter Storm",
]

HARDSHIP_EVENTS: List[str] = [
    "Crime",
    "Death",
    "Home Damage (leaks or broken pipes)",
    "Household Loss of Income",
    "Housing Crisis",
    "Mental Health and Well-Being",
    "Workplace Disruption",
]

ALL_EVENT_TYPES: List[str] = DISASTER_EVENTS + HARDSHIP_EVENTS + [NOT_LISTED_EVENT]

EMPLOYMENT_TYPES: List[str] = [
    "Active Full Time",
    "Active Part Time",
    "Full Time Short Term Disability",
    "Full-Time on FMLA (U.S. only)",
    "Part Time Short Term Disability",
    "Part-Time on FMLA (U.S. only)",
]

LANGUAGES: List[str] = [
    "Arabic",
    "Bengali",
    "Chinese",
    "Dutch",
    "English",
    "French",
    "German",
    "Hindi",
    "Italian",
    "Japanese",
    "Korean",
    "Mandarin Chinese",
    "Portuguese",
    "Russian",
    "Spanish",
    "Turkish",
    "Urdu",
    "Vietnamese",
]

# Free-text guardrail for narrative fields.
MAX_NARRATIVE_CHARS = 250
