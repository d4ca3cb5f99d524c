import sys
from datetime import datetime
from typing import Protocol, runtime_checkable

import openpyxl
import pandas as pd
from openpyxl.styles import Font, PatternFill, Alignment, Border, Side


@runtime_checkable
class Printer(Protocol):
    """The three hooks a DailyReport calls while it walks the timelog."""

    def print_header(self):
        ...

    def print_day(self, date, start_time, end_time, total_hours, project_totals):
        ...

    def print_footer(self, year_to_date_hours, day_count):
        ...


def weekday_name(date_str):
    """Weekday for a YYYY/MM/DD date string, e.g. 'Monday'"""
    return datetime.strptime(date_str, '%Y/%m/%d').strftime('%A')


class ConsolePrinter:
    """Plain text report, one block per day"""

    def __init__(self, out=None):
        self.out = out if out is not None else sys.stdout

    def _write(self, text=''):
        print(text, file=self.out)

    def print_header(self):
        self._write("=" * 60)
        self._write("TIMECLOCK DAILY REPORT")
        self._write("=" * 60)

    def print_day(self, date, start_time, end_time, total_hours, project_totals):
        self._write(f"\n{date} ({weekday_name(date)})  {start_time} - {end_time}  "
                    f"Total: {total_hours:.2f} hours")
        self._write("-" * 60)
        for project in sorted(project_totals):
            self._write(f"  {project:<45} {project_totals[project]:>8.2f}")

    def print_footer(self, year_to_date_hours, day_count):
        average = year_to_date_hours / day_count if day_count else 0
        self._write("\n" + "=" * 60)
        self._write(f"TOTAL WORKING TIME: {year_to_date_hours:.2f} hours in {day_count} days")
        self._write(f"Average per day: {average:.2f} hours")
        self._write("=" * 60)


class CsvPrinter:
    """Collects one row per day and project, written to a CSV file at the footer"""

    COLUMNS = ['Date', 'Start', 'End', 'Project', 'Hours', 'Day Total']

    def __init__(self, output_filepath):
        self.output_filepath = output_filepath
        self.rows = []

    def print_header(self):
        self.rows = []

    def print_day(self, date, start_time, end_time, total_hours, project_totals):
        for project in sorted(project_totals):
            self.rows.append({
                'Date': date,
                'Start': start_time,
                'End': end_time,
                'Project': project,
                'Hours': round(project_totals[project], 2),
                'Day Total': round(total_hours, 2)
            })

    def print_footer(self, year_to_date_hours, day_count):
        df = pd.DataFrame(self.rows, columns=self.COLUMNS)
        df.to_csv(self.output_filepath, index=False)
        print(f"CSV file generated: {self.output_filepath}")


class ExcelPrinter:
    """Workbook with one row per day and a totals row, saved at the footer"""

    HEADERS = ["Date", "Start", "End", "Total Hours", "Projects"]

    def __init__(self, output_filepath):
        self.output_filepath = output_filepath
        self.wb = None
        self.ws = None
        self.row = 1

        self.border = Border(
            left=Side(style='thin'),
            right=Side(style='thin'),
            top=Side(style='thin'),
            bottom=Side(style='thin')
        )
        self.data_alignment = Alignment(horizontal="left", vertical="center")
        self.center_alignment = Alignment(horizontal="center", vertical="center")

    def print_header(self):
        self.wb = openpyxl.Workbook()
        self.ws = self.wb.active
        self.ws.title = "Timeclock"

        header_font = Font(bold=True, color="FFFFFF")
        header_fill = PatternFill(start_color="366092", end_color="366092", fill_type="solid")
        header_alignment = Alignment(horizontal="center", vertical="center", wrap_text=True)

        for col, header in enumerate(self.HEADERS, 1):
            cell = self.ws.cell(row=1, column=col)
            cell.value = header
            cell.font = header_font
            cell.fill = header_fill
            cell.alignment = header_alignment
            cell.border = self.border

        self.ws.column_dimensions['A'].width = 14
        self.ws.column_dimensions['B'].width = 12
        self.ws.column_dimensions['C'].width = 12
        self.ws.column_dimensions['D'].width = 12
        self.ws.column_dimensions['E'].width = 60

        self.ws.freeze_panes = 'A2'
        self.row = 2

    def print_day(self, date, start_time, end_time, total_hours, project_totals):
        projects_str = ', '.join(f"{project}: {project_totals[project]:.2f}"
                                 for project in sorted(project_totals))

        values = [date, start_time, end_time, total_hours, projects_str]
        for col, value in enumerate(values, 1):
            cell = self.ws.cell(row=self.row, column=col)
            cell.value = value
            cell.border = self.border
            if col == 4:
                cell.alignment = self.center_alignment
                cell.number_format = '0.00'
            elif col == 5:
                cell.alignment = self.data_alignment
            else:
                cell.alignment = self.center_alignment

        self.row += 1

    def print_footer(self, year_to_date_hours, day_count):
        bold = Font(bold=True)

        label = self.ws.cell(row=self.row, column=1)
        label.value = "Total"
        label.font = bold

        days = self.ws.cell(row=self.row, column=2)
        days.value = f"{day_count} days"
        days.font = bold

        total = self.ws.cell(row=self.row, column=4)
        total.value = year_to_date_hours
        total.font = bold
        total.number_format = '0.00'
        total.alignment = self.center_alignment

        for col in range(1, len(self.HEADERS) + 1):
            self.ws.cell(row=self.row, column=col).border = self.border

        self.wb.save(self.output_filepath)
        print(f"Excel file generated: {self.output_filepath}")
