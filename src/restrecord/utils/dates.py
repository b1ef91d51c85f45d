"""Date helpers for model date columns."""

from datetime import date, datetime
from typing import Union

US_DATE_FORMATS = (
    "%m/%d/%Y",
    "%m/%d/%Y %H:%M",
    "%m/%d/%Y %H:%M:%S",
)

DATE_STRING_FORMAT = "%a %b %d %Y"


def parse_us_date(value: Union[str, date, datetime]) -> datetime:
    """
    Parse a US formatted date string into a datetime.
    
    Args:
        value: String like '01/15/2024' or '01/15/2024 13:45:00'. datetime values
            pass through unchanged and plain dates are promoted to midnight.
        
    Returns:
        Naive datetime
        
    Raises:
        ValueError: If the value is not a recognised US date
        
    Example:
        >>> parse_us_date("01/15/2024")
        datetime.datetime(2024, 1, 15, 0, 0)
    """
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if not isinstance(value, str):
        raise ValueError(f"Expected a US date string, got {type(value).__name__}: {value!r}")
    
    text = value.strip()
    for fmt in US_DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    raise ValueError(f"Not a US date string (MM/DD/YYYY): {value!r}")


def to_date_string(value: Union[date, datetime]) -> str:
    """
    Serialize a date column to its date-only form.
    
    Args:
        value: date or datetime
        
    Returns:
        Date-only string (e.g., 'Mon Jan 15 2024')
    """
    return value.strftime(DATE_STRING_FORMAT)
