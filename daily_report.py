import os
from dataclasses import dataclass, field
from datetime import datetime

from printers import Printer
from timelog import TIMELOG_FORMAT, read_entries

# Appended to a project label when the log ends before it was checked out
NOT_CHECKED_OUT = ' (NOT checked out)'


class SetupError(Exception):
    """Raised before parsing when the timelog or printer can not be used"""


@dataclass
class DayRecord:
    """Hours worked on one calendar day."""

    date: str
    start_time: str
    end_time: str = ''
    total_hours: float = 0.0
    project_totals: dict = field(default_factory=dict)

    def add(self, entry):
        """Add a LogEntry to the day, reclassifying a dangling project"""
        self.total_hours += entry.hours
        self.end_time = entry.check_out_time
        self.project_totals[entry.project] = self.project_totals.get(entry.project, 0) + entry.hours

        if entry.dangling:
            # Move everything booked on the project today, not just this entry
            self.project_totals[f"{entry.project}{NOT_CHECKED_OUT}"] = \
                self.project_totals.pop(entry.project)


@dataclass
class RunningTotals:
    """Totals across all days of one report run."""

    year_to_date_hours: float = 0.0
    day_count: int = 0


class DailyReport:
    """
    Parses a timelog and reports it day by day through a Printer.

    timelog: path to the timelog file, must exist and be readable.
    printer: object with print_header, print_day and print_footer.
    now: optional zero-argument callable returning the current datetime,
        used to close a check in that was never checked out.
    """

    def __init__(self, timelog, printer, now=None):
        if not (os.path.isfile(timelog) and os.access(timelog, os.R_OK)):
            raise SetupError(f"timelog ({timelog}) does not exist or is not readable")
        if not isinstance(printer, Printer):
            raise SetupError(f"printer ({type(printer).__name__}) is not a Printer")

        self.timelog = timelog
        self.printer = printer
        self.now = now if now is not None else datetime.now
        self._report_time = None

    def get_report_time(self):
        """Time the report is executed"""
        if self._report_time is not None:
            return self._report_time
        return self.now()

    def set_report_time(self, date_str, time_str):
        """Fix the report time, date as YYYY/MM/DD and time as HH:MM:SS"""
        fmt = f"{TIMELOG_FORMAT['date_format']} {TIMELOG_FORMAT['time_format']}"
        self._report_time = datetime.strptime(f"{date_str} {time_str}", fmt)

    def _emit(self, day, totals):
        self.printer.print_day(day.date, day.start_time, day.end_time,
                               day.total_hours, dict(day.project_totals))
        totals.year_to_date_hours += day.total_hours
        totals.day_count += 1

    def run(self, lines):
        """
        Walk the timelog lines once, calling print_day for every day and
        print_footer with the totals at the end. Returns the RunningTotals.

        A MalformedLineError aborts the run; the day being read is not printed.
        """
        totals = RunningTotals()
        day = None

        self.printer.print_header()

        for entry in read_entries(lines, self.get_report_time):
            if day is None:
                # First check in
                day = DayRecord(date=entry.date, start_time=entry.check_in_time)
            elif day.date != entry.date:
                # New day, print the current one and start over
                self._emit(day, totals)
                day = DayRecord(date=entry.date, start_time=entry.check_in_time)

            day.add(entry)

        # Last day is only printed here, the loop prints when the date changes
        if day is not None:
            self._emit(day, totals)

        self.printer.print_footer(totals.year_to_date_hours, totals.day_count)
        return totals

    def execute(self):
        """Open the timelog and run the report over it"""
        with open(self.timelog, encoding='utf-8') as f:
            return self.run(f)
