import os
import sys

from daily_report import DailyReport, SetupError
from printers import ConsolePrinter, CsvPrinter, ExcelPrinter
from timelog import MalformedLineError

DEFAULT_TIMELOG = os.path.join(os.path.expanduser('~'), '.timeclock', 'timelog')

USAGE = """Usage: python timeclock.py [timelog] [--csv <file> | --excel <file>]
Example: python timeclock.py ~/.timeclock/timelog
Excel report: python timeclock.py ~/.timeclock/timelog --excel report.xlsx
Without a timelog argument $TIMECLOCK_TIMELOG or ~/.timeclock/timelog is used."""


def default_timelog():
    return os.environ.get('TIMECLOCK_TIMELOG', DEFAULT_TIMELOG)


def parse_args(argv):
    """Return (timelog, printer) from the command line arguments"""
    timelog = None
    printer = None

    i = 0
    while i < len(argv):
        arg = argv[i]
        if arg in ('--csv', '--excel'):
            if i + 1 >= len(argv) or printer is not None:
                raise ValueError(f"{arg} needs exactly one output file")
            output_file = argv[i + 1]
            printer = CsvPrinter(output_file) if arg == '--csv' else ExcelPrinter(output_file)
            i += 2
        elif arg.startswith('-') or timelog is not None:
            raise ValueError(f"Unexpected argument: '{arg}'")
        else:
            timelog = arg
            i += 1

    if timelog is None:
        timelog = default_timelog()
    if printer is None:
        printer = ConsolePrinter()

    return timelog, printer


def main(argv=None):
    if argv is None:
        argv = sys.argv[1:]

    if argv and argv[0] in ('-h', '--help'):
        print(USAGE)
        return 0

    try:
        timelog, printer = parse_args(argv)
    except ValueError as e:
        print(f"Error: {e}")
        print(USAGE)
        return 1

    try:
        report = DailyReport(timelog, printer)
        if not isinstance(printer, ConsolePrinter):
            print(f"Reading timelog {timelog}...")
        report.execute()
    except (SetupError, MalformedLineError) as e:
        print(f"Error: {e}")
        return 1

    return 0


if __name__ == '__main__':
    sys.exit(main())
