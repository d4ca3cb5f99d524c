"""
Unit tests for the timeclock daily report
"""
import io
import os
import shutil
import tempfile
import unittest
from contextlib import redirect_stdout
from datetime import datetime

import openpyxl
import pandas as pd

from daily_report import DailyReport, DayRecord, SetupError, NOT_CHECKED_OUT
from printers import ConsolePrinter, CsvPrinter, ExcelPrinter, Printer
from timelog import LogEntry, MalformedLineError, elapsed_hours, read_entries, split_line
from timeclock import main, parse_args

EXAMPLE_LOG = """i 2012/01/02 08:00:00 ProjectA
o 2012/01/02 12:00:00
i 2012/01/02 13:00:00 ProjectB
o 2012/01/02 17:00:00
i 2012/01/03 09:00:00 ProjectA
"""


class RecordingPrinter:
    """Keeps every hook call so the tests can look at them"""

    def __init__(self):
        self.calls = []
        self.days = []
        self.footer = None

    def print_header(self):
        self.calls.append('header')

    def print_day(self, date, start_time, end_time, total_hours, project_totals):
        self.calls.append('day')
        self.days.append({
            'date': date,
            'start_time': start_time,
            'end_time': end_time,
            'total_hours': total_hours,
            'project_totals': project_totals
        })

    def print_footer(self, year_to_date_hours, day_count):
        self.calls.append('footer')
        self.footer = (year_to_date_hours, day_count)


class TimelogTestCase(unittest.TestCase):
    """Writes timelogs into a temporary directory"""

    def setUp(self):
        self.tmpdir = tempfile.mkdtemp()

    def tearDown(self):
        shutil.rmtree(self.tmpdir)

    def write_timelog(self, content, name='timelog'):
        path = os.path.join(self.tmpdir, name)
        with open(path, 'w', encoding='utf-8') as f:
            f.write(content)
        return path

    def run_report(self, content, report_date='2012/01/03', report_time='09:30:00'):
        printer = RecordingPrinter()
        report = DailyReport(self.write_timelog(content), printer)
        report.set_report_time(report_date, report_time)
        report.execute()
        return printer


class TestTimelogReader(unittest.TestCase):
    """Test cases for pairing and parsing timelog lines"""

    def test_split_line_keeps_spaces_in_project(self):
        """Test that the project label is not split further"""
        result = split_line("i 2012/01/02 08:00:00 Customer X: write the manual")
        self.assertEqual(result, ('2012/01/02', '08:00:00', 'Customer X: write the manual'))

    def test_split_line_without_project(self):
        """Test that a check out line has an empty project"""
        self.assertEqual(split_line("o 2012/01/02 12:00:00"), ('2012/01/02', '12:00:00', ''))

    def test_elapsed_hours_single_pair(self):
        """Test elapsed time is (check out - check in) / 3600"""
        result = elapsed_hours('2012/01/02', '08:00:00', '2012/01/02', '09:45:00')
        self.assertAlmostEqual(result, 1.75)

    def test_elapsed_hours_across_midnight(self):
        """Test a session checked out on the following day"""
        result = elapsed_hours('2012/01/02', '22:00:00', '2012/01/03', '02:00:00')
        self.assertAlmostEqual(result, 4.0)

    def test_elapsed_hours_negative_passes_through(self):
        """Test that check out before check in is not corrected"""
        result = elapsed_hours('2012/01/02', '12:00:00', '2012/01/02', '11:00:00')
        self.assertAlmostEqual(result, -1.0)

    def test_read_entries_pairs_lines(self):
        """Test that each i/o pair becomes one entry"""
        lines = ["i 2012/01/02 08:00:00 ProjectA\n", "o 2012/01/02 12:30:00 ignored\n"]
        entries = list(read_entries(lines))

        self.assertEqual(len(entries), 1)
        entry = entries[0]
        self.assertIsInstance(entry, LogEntry)
        self.assertEqual(entry.date, '2012/01/02')
        self.assertEqual(entry.check_in_time, '08:00:00')
        self.assertEqual(entry.check_out_time, '12:30:00')
        self.assertEqual(entry.project, 'ProjectA')
        self.assertAlmostEqual(entry.hours, 4.5)
        self.assertFalse(entry.dangling)

    def test_read_entries_handles_crlf(self):
        """Test that Windows line endings are removed"""
        lines = ["i 2012/01/02 08:00:00 ProjectA\r\n", "o 2012/01/02 09:00:00\r\n"]
        entry = next(read_entries(lines))
        self.assertEqual(entry.project, 'ProjectA')
        self.assertEqual(entry.check_out_time, '09:00:00')

    def test_read_entries_dangling_uses_report_time(self):
        """Test that a final check in is closed at the report time"""
        lines = ["i 2012/01/03 09:00:00 ProjectA\n"]
        entries = list(read_entries(lines, lambda: datetime(2012, 1, 3, 9, 30, 0)))

        self.assertEqual(len(entries), 1)
        self.assertTrue(entries[0].dangling)
        self.assertEqual(entries[0].check_out_date, '2012/01/03')
        self.assertEqual(entries[0].check_out_time, '09:30:00')
        self.assertAlmostEqual(entries[0].hours, 0.5)

    def test_two_check_ins_raise_with_line_number(self):
        """Test that a check in where a check out is expected is fatal"""
        lines = ["i 2012/01/02 08:00:00 A\n", "i 2012/01/02 09:00:00 B\n"]
        with self.assertRaises(MalformedLineError) as ctx:
            list(read_entries(lines))
        self.assertEqual(ctx.exception.line_number, 2)
        self.assertIn("Expected check out in line 2", str(ctx.exception))

    def test_check_out_first_raises_line_one(self):
        """Test that a log starting with a check out is fatal"""
        with self.assertRaises(MalformedLineError) as ctx:
            list(read_entries(["o 2012/01/02 08:00:00\n"]))
        self.assertEqual(ctx.exception.line_number, 1)
        self.assertIn("Expected check in in line 1", str(ctx.exception))

    def test_empty_log_has_no_entries(self):
        """Test that an empty log yields nothing"""
        self.assertEqual(list(read_entries([])), [])


class TestDayRecord(unittest.TestCase):
    """Test cases for adding entries to a day"""

    def make_entry(self, project, hours, dangling=False, check_out_time='12:00:00'):
        return LogEntry(date='2012/01/02', check_in_time='08:00:00', check_out_date='2012/01/02',
                        check_out_time=check_out_time, project=project, hours=hours,
                        dangling=dangling)

    def test_add_accumulates_per_project(self):
        """Test that hours are summed by project label"""
        day = DayRecord(date='2012/01/02', start_time='08:00:00')
        day.add(self.make_entry('A', 1.0))
        day.add(self.make_entry('B', 2.0))
        day.add(self.make_entry('A', 0.5, check_out_time='16:00:00'))

        self.assertEqual(day.project_totals, {'A': 1.5, 'B': 2.0})
        self.assertAlmostEqual(day.total_hours, 3.5)
        self.assertEqual(day.end_time, '16:00:00')

    def test_dangling_moves_whole_project_total(self):
        """Test that the renamed key holds the full day total of the project"""
        day = DayRecord(date='2012/01/02', start_time='08:00:00')
        day.add(self.make_entry('A', 1.0))
        day.add(self.make_entry('A', 0.5, dangling=True))

        self.assertEqual(day.project_totals, {'A' + NOT_CHECKED_OUT: 1.5})


class TestDailyReport(TimelogTestCase):
    """Test cases for the day by day aggregation"""

    def test_example_log(self):
        """Test the full example log with a fixed report time"""
        printer = self.run_report(EXAMPLE_LOG)

        self.assertEqual(printer.calls, ['header', 'day', 'day', 'footer'])

        first, second = printer.days
        self.assertEqual(first['date'], '2012/01/02')
        self.assertEqual(first['start_time'], '08:00:00')
        self.assertEqual(first['end_time'], '17:00:00')
        self.assertAlmostEqual(first['total_hours'], 8.0)
        self.assertEqual(first['project_totals'], {'ProjectA': 4.0, 'ProjectB': 4.0})

        self.assertEqual(second['date'], '2012/01/03')
        self.assertEqual(second['start_time'], '09:00:00')
        self.assertEqual(second['end_time'], '09:30:00')
        self.assertAlmostEqual(second['total_hours'], 0.5)
        self.assertEqual(second['project_totals'], {'ProjectA (NOT checked out)': 0.5})

        year_to_date_hours, day_count = printer.footer
        self.assertAlmostEqual(year_to_date_hours, 8.5)
        self.assertEqual(day_count, 2)

    def test_footer_matches_sum_of_days(self):
        """Test that year to date hours equal the sum of the day totals"""
        content = (
            "i 2012/02/01 08:15:00 A\n"
            "o 2012/02/01 11:40:10\n"
            "i 2012/02/01 12:20:00 B\n"
            "o 2012/02/01 16:05:33\n"
            "i 2012/02/02 07:59:00 A\n"
            "o 2012/02/02 15:01:00\n"
            "i 2012/02/05 10:00:00 C\n"
            "o 2012/02/05 10:20:00\n"
        )
        printer = self.run_report(content)

        year_to_date_hours, day_count = printer.footer
        self.assertAlmostEqual(year_to_date_hours, sum(d['total_hours'] for d in printer.days))
        self.assertEqual(day_count, 3)
        self.assertEqual([d['date'] for d in printer.days], ['2012/02/01', '2012/02/02', '2012/02/05'])

    def test_dangling_replaces_same_day_project_key(self):
        """Test that the original project name disappears for a dangling check in"""
        content = (
            "i 2012/01/03 07:00:00 ProjectA\n"
            "o 2012/01/03 08:00:00\n"
            "i 2012/01/03 08:00:00 ProjectB\n"
            "o 2012/01/03 08:30:00\n"
            "i 2012/01/03 09:00:00 ProjectA\n"
        )
        printer = self.run_report(content)

        totals = printer.days[0]['project_totals']
        self.assertNotIn('ProjectA', totals)
        self.assertAlmostEqual(totals['ProjectA (NOT checked out)'], 1.5)
        self.assertAlmostEqual(totals['ProjectB'], 0.5)

    def test_malformed_log_prints_no_partial_day(self):
        """Test that a parse error stops before the day being read is printed"""
        content = (
            "i 2012/01/02 08:00:00 A\n"
            "o 2012/01/02 12:00:00\n"
            "i 2012/01/03 08:00:00 A\n"
            "o 2012/01/03 12:00:00\n"
            "i 2012/01/03 13:00:00 B\n"
            "i 2012/01/03 14:00:00 B\n"
        )
        printer = RecordingPrinter()
        report = DailyReport(self.write_timelog(content), printer)

        with self.assertRaises(MalformedLineError) as ctx:
            report.execute()

        self.assertEqual(ctx.exception.line_number, 6)
        self.assertEqual([d['date'] for d in printer.days], ['2012/01/02'])
        self.assertNotIn('footer', printer.calls)

    def test_two_check_ins_on_first_day(self):
        """Test that only the header is printed when the first pair is broken"""
        content = "i 2012/01/02 08:00:00 A\ni 2012/01/02 09:00:00 B\n"
        printer = RecordingPrinter()
        report = DailyReport(self.write_timelog(content), printer)

        with self.assertRaises(MalformedLineError):
            report.execute()
        self.assertEqual(printer.calls, ['header'])

    def test_empty_log_prints_header_and_footer(self):
        """Test that an empty log still gets a header and a zero footer"""
        printer = self.run_report('')
        self.assertEqual(printer.calls, ['header', 'footer'])
        self.assertEqual(printer.footer, (0.0, 0))

    def test_negative_duration_is_not_an_error(self):
        """Test that a check out before the check in reduces the totals"""
        content = (
            "i 2012/01/02 12:00:00 A\n"
            "o 2012/01/02 11:00:00\n"
            "i 2012/01/02 13:00:00 A\n"
            "o 2012/01/02 15:00:00\n"
        )
        printer = self.run_report(content)
        self.assertAlmostEqual(printer.days[0]['total_hours'], 1.0)
        self.assertAlmostEqual(printer.footer[0], 1.0)

    def test_repeated_date_starts_new_day(self):
        """Test that dates are not required to increase"""
        content = (
            "i 2012/01/02 08:00:00 A\n"
            "o 2012/01/02 09:00:00\n"
            "i 2012/01/03 08:00:00 A\n"
            "o 2012/01/03 09:00:00\n"
            "i 2012/01/02 10:00:00 A\n"
            "o 2012/01/02 11:00:00\n"
        )
        printer = self.run_report(content)
        self.assertEqual([d['date'] for d in printer.days], ['2012/01/02', '2012/01/03', '2012/01/02'])
        self.assertEqual(printer.footer[1], 3)

    def test_project_totals_are_copies(self):
        """Test that each printed day owns its project totals"""
        content = (
            "i 2012/01/02 08:00:00 A\n"
            "o 2012/01/02 09:00:00\n"
            "i 2012/01/03 08:00:00 B\n"
            "o 2012/01/03 09:00:00\n"
        )
        printer = self.run_report(content)
        printer.days[0]['project_totals']['X'] = 1.0
        self.assertEqual(printer.days[1]['project_totals'], {'B': 1.0})

    def test_injected_clock(self):
        """Test that the now callable is used when no report time is set"""
        printer = RecordingPrinter()
        report = DailyReport(self.write_timelog("i 2012/01/03 09:00:00 A\n"), printer,
                             now=lambda: datetime(2012, 1, 3, 11, 0, 0))
        totals = report.execute()

        self.assertAlmostEqual(totals.year_to_date_hours, 2.0)
        self.assertEqual(totals.day_count, 1)
        self.assertEqual(printer.days[0]['end_time'], '11:00:00')

    def test_get_report_time_after_set(self):
        """Test that set_report_time overrides the clock"""
        report = DailyReport(self.write_timelog(EXAMPLE_LOG), RecordingPrinter())
        report.set_report_time('2012/01/03', '09:30:00')
        self.assertEqual(report.get_report_time(), datetime(2012, 1, 3, 9, 30, 0))

    def test_run_accepts_lines(self):
        """Test that run works on any iterable of lines"""
        report = DailyReport(self.write_timelog(''), RecordingPrinter())
        report.set_report_time('2012/01/03', '09:30:00')
        totals = report.run(EXAMPLE_LOG.splitlines(True))
        self.assertAlmostEqual(totals.year_to_date_hours, 8.5)


class TestSetup(TimelogTestCase):
    """Test cases for the checks done before parsing"""

    def test_missing_timelog(self):
        """Test that a missing timelog is a setup error"""
        with self.assertRaises(SetupError):
            DailyReport(os.path.join(self.tmpdir, 'missing'), RecordingPrinter())

    def test_directory_is_not_a_timelog(self):
        """Test that a directory is not accepted as timelog"""
        with self.assertRaises(SetupError):
            DailyReport(self.tmpdir, RecordingPrinter())

    def test_incompatible_printer(self):
        """Test that a printer without the hooks is a setup error"""
        with self.assertRaises(SetupError):
            DailyReport(self.write_timelog(EXAMPLE_LOG), object())

    def test_printers_match_protocol(self):
        """Test that the shipped printers have the three hooks"""
        self.assertIsInstance(ConsolePrinter(io.StringIO()), Printer)
        self.assertIsInstance(CsvPrinter('report.csv'), Printer)
        self.assertIsInstance(ExcelPrinter('report.xlsx'), Printer)
        self.assertIsInstance(RecordingPrinter(), Printer)


class TestPrinters(TimelogTestCase):
    """Test cases for the console, CSV and Excel output"""

    def run_with(self, printer):
        report = DailyReport(self.write_timelog(EXAMPLE_LOG), printer)
        report.set_report_time('2012/01/03', '09:30:00')
        with redirect_stdout(io.StringIO()):
            report.execute()

    def test_console_printer(self):
        """Test the plain text report"""
        out = io.StringIO()
        self.run_with(ConsolePrinter(out))
        text = out.getvalue()

        self.assertIn("TIMECLOCK DAILY REPORT", text)
        self.assertIn("2012/01/02 (Monday)  08:00:00 - 17:00:00  Total: 8.00 hours", text)
        self.assertIn("ProjectA (NOT checked out)", text)
        self.assertIn("TOTAL WORKING TIME: 8.50 hours in 2 days", text)
        self.assertIn("Average per day: 4.25 hours", text)

    def test_console_printer_no_days(self):
        """Test that an empty report does not divide by zero"""
        out = io.StringIO()
        printer = ConsolePrinter(out)
        printer.print_header()
        printer.print_footer(0.0, 0)
        self.assertIn("Average per day: 0.00 hours", out.getvalue())

    def test_csv_printer(self):
        """Test that the CSV has one row per day and project"""
        output_file = os.path.join(self.tmpdir, 'report.csv')
        self.run_with(CsvPrinter(output_file))

        df = pd.read_csv(output_file)
        self.assertEqual(list(df.columns), CsvPrinter.COLUMNS)
        self.assertEqual(len(df), 3)
        self.assertEqual(list(df['Project']), ['ProjectA', 'ProjectB', 'ProjectA (NOT checked out)'])
        self.assertAlmostEqual(df['Hours'].sum(), 8.5)

    def test_excel_printer(self):
        """Test that the workbook has a row per day and a totals row"""
        output_file = os.path.join(self.tmpdir, 'report.xlsx')
        self.run_with(ExcelPrinter(output_file))

        self.assertTrue(os.path.exists(output_file))
        ws = openpyxl.load_workbook(output_file).active
        self.assertEqual(ws.cell(row=1, column=1).value, "Date")
        self.assertEqual(ws.cell(row=2, column=1).value, '2012/01/02')
        self.assertAlmostEqual(ws.cell(row=2, column=4).value, 8.0)
        self.assertEqual(ws.cell(row=2, column=5).value, "ProjectA: 4.00, ProjectB: 4.00")
        self.assertEqual(ws.cell(row=3, column=5).value, "ProjectA (NOT checked out): 0.50")
        self.assertEqual(ws.cell(row=4, column=1).value, "Total")
        self.assertEqual(ws.cell(row=4, column=2).value, "2 days")
        self.assertAlmostEqual(ws.cell(row=4, column=4).value, 8.5)


class TestCommandLine(TimelogTestCase):
    """Test cases for the timeclock entry point"""

    def test_parse_args_defaults_to_console(self):
        """Test that the console printer is the default"""
        timelog, printer = parse_args(['my.log'])
        self.assertEqual(timelog, 'my.log')
        self.assertIsInstance(printer, ConsolePrinter)

    def test_parse_args_excel(self):
        """Test the --excel option"""
        timelog, printer = parse_args(['my.log', '--excel', 'out.xlsx'])
        self.assertIsInstance(printer, ExcelPrinter)
        self.assertEqual(printer.output_filepath, 'out.xlsx')

    def test_parse_args_uses_environment(self):
        """Test that TIMECLOCK_TIMELOG is the default timelog"""
        old = os.environ.get('TIMECLOCK_TIMELOG')
        os.environ['TIMECLOCK_TIMELOG'] = '/tmp/env.log'
        try:
            timelog, _ = parse_args(['--csv', 'out.csv'])
        finally:
            if old is None:
                del os.environ['TIMECLOCK_TIMELOG']
            else:
                os.environ['TIMECLOCK_TIMELOG'] = old
        self.assertEqual(timelog, '/tmp/env.log')

    def test_parse_args_rejects_missing_output(self):
        """Test that --csv without a file is an error"""
        with self.assertRaises(ValueError):
            parse_args(['my.log', '--csv'])

    def test_main_reports_malformed_log(self):
        """Test that a malformed log exits with status 1"""
        path = self.write_timelog("o 2012/01/02 08:00:00\n")
        out = io.StringIO()
        with redirect_stdout(out):
            status = main([path])
        self.assertEqual(status, 1)
        self.assertIn("Error: Expected check in in line 1", out.getvalue())

    def test_main_reports_missing_timelog(self):
        """Test that a missing timelog exits with status 1"""
        out = io.StringIO()
        with redirect_stdout(out):
            status = main([os.path.join(self.tmpdir, 'missing')])
        self.assertEqual(status, 1)
        self.assertIn("does not exist", out.getvalue())

    def test_main_console_report(self):
        """Test a complete console run"""
        path = self.write_timelog(EXAMPLE_LOG.replace("i 2012/01/03 09:00:00 ProjectA\n", ""))
        out = io.StringIO()
        with redirect_stdout(out):
            status = main([path])
        self.assertEqual(status, 0)
        self.assertIn("TOTAL WORKING TIME: 8.00 hours in 1 days", out.getvalue())


if __name__ == '__main__':
    unittest.main(verbosity=2)
