"""
Permissive parsing of the temporal values captured from step text.

Accepted forms:
    time      - 24h or 12h clock, optional seconds and milliseconds,
                optional zone ("14:30", "2:30pm", "14:30:45.123 Europe/London")
    date      - day/month/year by default, ISO year-month-day, written month
                names ("15/01/2024", "2024-01-15", "15 Jan 2024", "January 15, 2024")
    datetime  - a date and a time joined by "T" or a space
    timezone  - "Z", "UTC", "+05:30", "-0800", IANA names ("America/New_York")
    duration  - sequences of number+unit ("1h30m", "1.5s", "-250ms")

Times normalize to the reference date 0001-01-01 and dates to midnight.
Values without a zone are returned naive.
"""

import re
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from ...core.exceptions import InvalidFormatError

REFERENCE_DATE = datetime(1, 1, 1)

TIME_FORMATS = [
    '%H:%M:%S.%f',
    '%H:%M:%S',
    '%H:%M',
    '%I:%M:%S.%f%p',
    '%I:%M:%S%p',
    '%I:%M%p',
    '%I%p',
]

# Numeric dates without a leading year are day-first: "01/02/2024" is 1 February
DATE_FORMATS = [
    '%Y-%m-%d',
    '%Y/%m/%d',
    '%d/%m/%Y',
    '%d-%m-%Y',
    '%d.%m.%Y',
    '%d/%m/%y',
    '%d-%m-%y',
    '%d.%m.%y',
    '%d %b %Y',
    '%d %B %Y',
    '%b %d %Y',
    '%B %d %Y',
    '%d %b, %Y',
    '%d %B, %Y',
    '%b %d, %Y',
    '%B %d, %Y',
]

OFFSET_PATTERN = re.compile(r'^([+-])(\d{2}):?(\d{2})$')
MERIDIEM_PATTERN = re.compile(r'\s*([AaPp])\.?\s*([Mm])\.?$')
DATE_TIME_SEPARATOR = re.compile(r'(?<=\d)T(?=\d)')
DURATION_PATTERN = re.compile(r'^[+-]?(?:(?:\d+(?:\.\d*)?|\.\d+)(?:ns|us|µs|μs|ms|s|m|h))+$')
DURATION_COMPONENT = re.compile(r'(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|μs|ms|s|m|h)')

DURATION_UNITS = {
    'ns': 1,
    'us': 1_000,
    'µs': 1_000,
    'μs': 1_000,
    'ms': 1_000_000,
    's': 1_000_000_000,
    'm': 60 * 1_000_000_000,
    'h': 3600 * 1_000_000_000,
}


class DateTimeParser:
    """Parse time, date, datetime, timezone and duration literals"""

    @staticmethod
    def parse_timezone(text: str) -> tzinfo:
        """
        Parse a zone designator.

        Args:
            text: "Z", "UTC", a numeric offset or an IANA zone name

        Returns:
            The matching tzinfo

        Raises:
            InvalidFormatError: if the text is not a known zone
        """
        value = text.strip()
        if value in ('Z', 'z') or value.upper() == 'UTC':
            return timezone.utc

        if match := OFFSET_PATTERN.match(value):
            sign, hours, minutes = match.groups()
            if int(hours) > 23 or int(minutes) > 59:
                raise InvalidFormatError('timezone', text, 'offset out of range')
            offset = timedelta(hours=int(hours), minutes=int(minutes))
            return timezone(-offset if sign == '-' else offset)

        if '/' in value or value.isalpha():
            try:
                return ZoneInfo(value)
            except (ZoneInfoNotFoundError, ValueError) as e:
                raise InvalidFormatError('timezone', text, 'unknown zone name') from e

        raise InvalidFormatError('timezone', text, 'expected Z, UTC, +HH:MM or an IANA zone name')

    @staticmethod
    def extract_timezone(text: str) -> Tuple[str, Optional[tzinfo]]:
        """
        Split a trailing zone designator off a time or datetime literal.

        Returns:
            The remaining text and the zone, or (text, None) when there is no zone
        """
        value = text.strip()

        if value.endswith(('Z', 'z')) and len(value) > 1 and value[-2].isdigit():
            return value[:-1].strip(), timezone.utc
        if value.upper().endswith('UTC') and len(value) > 3 and (value[-4] == ' ' or value[-4].isdigit()):
            return value[:-3].strip(), timezone.utc

        head, _, last = value.rpartition(' ')
        if head and '/' in last:
            try:
                return head.strip(), ZoneInfo(last)
            except (ZoneInfoNotFoundError, ValueError):
                pass
        if head and OFFSET_PATTERN.match(last):
            return head.strip(), DateTimeParser.parse_timezone(last)

        # Offset attached to the clock: "14:30+05:30", "14:30-0800"
        for index in range(len(value) - 1, 0, -1):
            if value[index] in '+-':
                candidate = value[index:]
                if OFFSET_PATTERN.match(candidate) and ':' in value[:index]:
                    return value[:index].strip(), DateTimeParser.parse_timezone(candidate)
                break

        return value, None

    @staticmethod
    def parse_time(text: str) -> datetime:
        """
        Parse a clock time into a datetime on the reference date 0001-01-01.

        Raises:
            InvalidFormatError: if no supported layout matches
        """
        value, zone = DateTimeParser.extract_timezone(text)
        parsed = DateTimeParser._parse_clock(value)
        if parsed is None:
            raise InvalidFormatError('time', text, 'expected HH:MM[:SS[.mmm]] with optional am/pm')

        result = REFERENCE_DATE.replace(hour=parsed.hour, minute=parsed.minute,
                                        second=parsed.second, microsecond=parsed.microsecond)
        return result.replace(tzinfo=zone) if zone else result

    @staticmethod
    def parse_date(text: str) -> datetime:
        """
        Parse a calendar date into a datetime at midnight.

        Numeric dates are read day-first unless they start with a four digit year.

        Raises:
            InvalidFormatError: if no supported layout matches
        """
        value = text.strip()
        if _has_month_name(value):
            value = ' '.join(value.replace('.', ' ').split())

        for date_format in DATE_FORMATS:
            try:
                return datetime.strptime(value, date_format)
            except ValueError:
                continue

        raise InvalidFormatError('date', text, 'expected DD/MM/YYYY, YYYY-MM-DD or a written month')

    @staticmethod
    def parse_datetime(text: str) -> datetime:
        """
        Parse a date and a time separated by "T" or whitespace, with an optional zone.

        Raises:
            InvalidFormatError: if either part is invalid
        """
        value, zone = DateTimeParser.extract_timezone(text)

        date_part, time_part = DateTimeParser._split_datetime(value)
        if date_part is None:
            try:
                parsed = datetime.fromisoformat(value)
            except ValueError as e:
                raise InvalidFormatError('datetime', text, 'expected a date followed by a time') from e
            return parsed.replace(tzinfo=zone) if zone else parsed

        try:
            day = DateTimeParser.parse_date(date_part)
        except InvalidFormatError as e:
            raise InvalidFormatError('datetime', text, f'invalid date part {date_part!r}') from e

        clock = DateTimeParser._parse_clock(time_part)
        if clock is None:
            raise InvalidFormatError('datetime', text, f'invalid time part {time_part!r}')

        result = day.replace(hour=clock.hour, minute=clock.minute,
                             second=clock.second, microsecond=clock.microsecond)
        return result.replace(tzinfo=zone) if zone else result

    @staticmethod
    def parse_duration(text: str) -> timedelta:
        """
        Parse a duration such as "1h30m", "2.5s", "150ms" or "-1m".

        A bare "0" is accepted. Values are rounded to whole microseconds.

        Raises:
            InvalidFormatError: if the text is not a unit-suffixed duration
        """
        value = text.strip()
        if value in ('0', '+0', '-0'):
            return timedelta(0)
        if not DURATION_PATTERN.match(value):
            raise InvalidFormatError('duration', text, 'expected number+unit pairs such as 1h30m or 250ms')

        nanoseconds = sum(float(amount) * DURATION_UNITS[unit]
                          for amount, unit in DURATION_COMPONENT.findall(value))
        total = timedelta(microseconds=nanoseconds / 1000)

        return -total if value.startswith('-') else total

    @staticmethod
    def _parse_clock(value: str) -> Optional[datetime]:
        value = value.strip()
        if match := MERIDIEM_PATTERN.search(value):
            value = value[:match.start()].strip() + (match.group(1) + match.group(2)).upper()

        for time_format in TIME_FORMATS:
            try:
                return datetime.strptime(value, time_format)
            except ValueError:
                continue
        return None

    @staticmethod
    def _split_datetime(value: str) -> Tuple[Optional[str], str]:
        if match := DATE_TIME_SEPARATOR.search(value):
            return value[:match.start()], value[match.end():]

        # The time part is the shortest trailing run of words holding a colon
        words = value.split(' ')
        for index in range(len(words) - 1, 0, -1):
            tail = ' '.join(words[index:])
            if ':' in tail:
                return ' '.join(words[:index]).strip(), tail
        return None, value


def _has_month_name(text: str) -> bool:
    return any(c.isalpha() for c in text)
