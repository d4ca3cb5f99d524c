import time
from dataclasses import dataclass
from datetime import datetime

# Timelog Format
TIMELOG_FORMAT = {
    'check_in': 'i',
    'check_out': 'o',
    'date_format': '%Y/%m/%d',
    'time_format': '%H:%M:%S',
}


class MalformedLineError(ValueError):
    """Raised when a line does not carry the marker expected at its position"""

    def __init__(self, expected, line_number, line=None):
        self.expected = expected
        self.line_number = line_number
        self.line = line
        super().__init__(f"Expected {expected} in line {line_number}")


@dataclass
class LogEntry:
    """A check-in paired with its check-out."""

    date: str  # YYYY/MM/DD
    check_in_time: str  # HH:MM:SS
    check_out_date: str
    check_out_time: str
    project: str
    hours: float
    dangling: bool = False
    line_number: int = 0


def local_timestamp(date_str, time_str):
    """
    Convert a log date (YYYY/MM/DD) and time (HH:MM:SS) to seconds since epoch.
    The wall-clock value is resolved with the local time zone calendar rules.
    """
    fmt = f"{TIMELOG_FORMAT['date_format']} {TIMELOG_FORMAT['time_format']}"
    parsed = time.strptime(f"{date_str} {time_str}", fmt)
    return time.mktime(parsed)


def format_report_time(instant):
    """Return the (date, time) log strings for a datetime"""
    return (instant.strftime(TIMELOG_FORMAT['date_format']),
            instant.strftime(TIMELOG_FORMAT['time_format']))


def elapsed_hours(in_date, in_time, out_date, out_time):
    """Hours between check in and check out, negative if check out comes first"""
    seconds = local_timestamp(out_date, out_time) - local_timestamp(in_date, in_time)
    return seconds / 60 / 60


def is_check_in(line):
    return line.startswith(TIMELOG_FORMAT['check_in'] + ' ')


def is_check_out(line):
    return line.startswith(TIMELOG_FORMAT['check_out'] + ' ')


def split_line(line):
    """
    Split a timelog line into (date, time, project).
    The line has at most four space separated fields:
      - state is either 'i' (check in) or 'o' (check out)
      - date is formatted as YYYY/MM/DD
      - time is formatted as HH:MM:SS
      - project is the name of the project/task, only required when checking in.
        It may contain spaces and is kept as one field.
    Missing fields come back as empty strings.
    """
    fields = line.split(' ', 3)[1:]
    fields += [''] * (3 - len(fields))
    return fields[0], fields[1], fields[2]


def read_entries(lines, report_time=None):
    """
    Pair up check in / check out lines and yield a LogEntry for each pair.

    lines: any iterable of text lines (an open file works).
    report_time: zero-argument callable returning the datetime used to close a
        dangling check in at the end of the log. Defaults to the wall clock.

    Raises MalformedLineError with the 1-based line number when the lines do
    not alternate i, o, i, o, ...
    """
    if report_time is None:
        report_time = datetime.now

    numbered = enumerate(lines, 1)
    for in_number, iline in numbered:
        iline = iline.rstrip('\r\n')
        if not is_check_in(iline):
            raise MalformedLineError('check in', in_number, iline)

        oline = None
        next_line = next(numbered, None)
        if next_line is not None:
            out_number, oline = next_line
            oline = oline.rstrip('\r\n')
            if not is_check_out(oline):
                raise MalformedLineError('check out', out_number, oline)

        in_date, in_time, project = split_line(iline)
        if oline is not None:
            out_date, out_time, _ = split_line(oline)
            dangling = False
        else:
            # Log ends with a check in, close it at the report time
            out_date, out_time = format_report_time(report_time())
            dangling = True

        yield LogEntry(
            date=in_date,
            check_in_time=in_time,
            check_out_date=out_date,
            check_out_time=out_time,
            project=project,
            hours=elapsed_hours(in_date, in_time, out_date, out_time),
            dangling=dangling,
            line_number=in_number,
        )
