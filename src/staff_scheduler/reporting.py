"""
Reporting and Export Module for Staff Scheduling System

Turns a generated schedule into a row-per-employee table and handles
PDF, Excel, and CSV export of that table.
"""

import pandas as pd
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, landscape
from reportlab.platypus import SimpleDocTemplate, Table, TableStyle, Paragraph, Spacer, PageBreak
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import inch
from datetime import datetime, date
from pathlib import Path
from typing import Dict, List, Optional, Any, Iterable
import logging

from .config import (
    EXPORT_EXTENSIONS, EXPORT_FILE_PREFIX, NAME_COLUMN, OFF_LABEL,
    PDF_DAYS_PER_PAGE, REPORT_TITLE,
)
from .data_manager import DataManager, Employee
from .scheduler_logic import Schedule, ScheduleResult, find_understaffed

logger = logging.getLogger(__name__)


def to_table(schedule: Schedule, employees: Iterable[Employee], shifts: Iterable[str]) -> List[Dict[str, str]]:
    """
    One row per employee: the name, then the shift worked on each day or "Off".

    Columns after the name are keyed by each day's display label. Shifts are
    searched in catalog order and the first match wins.
    """
    shift_labels = list(shifts)
    rows = []
    for employee in employees:
        row = {NAME_COLUMN: employee.name}
        for day_schedule in schedule:
            assigned = next(
                (label for label in shift_labels if employee.name in day_schedule.shifts.get(label, [])),
                None
            )
            row[day_schedule.date] = assigned or OFF_LABEL
        rows.append(row)
    return rows


class ReportGenerator:
    """Main class for generating reports and exports"""

    def __init__(self, data_manager: DataManager):
        self.data_manager = data_manager
        self.styles = getSampleStyleSheet()
        self._setup_custom_styles()

    def _setup_custom_styles(self):
        """Setup custom report styles"""
        self.styles.add(ParagraphStyle(
            name='CustomTitle',
            parent=self.styles['Heading1'],
            fontSize=14,
            spaceAfter=12,
            alignment=0
        ))

        self.styles.add(ParagraphStyle(
            name='CustomHeading',
            parent=self.styles['Heading2'],
            fontSize=12,
            spaceAfter=8
        ))

    def create_schedule_dataframe(self, schedule: Schedule) -> pd.DataFrame:
        """Create the row-per-employee schedule DataFrame"""
        rows = to_table(schedule, self.data_manager.get_employees(), self.data_manager.get_shift_labels())
        columns = [NAME_COLUMN] + [day_schedule.date for day_schedule in schedule]
        return pd.DataFrame(rows, columns=columns)

    def create_coverage_dataframe(self, schedule: Schedule) -> pd.DataFrame:
        """Create per-day, per-shift coverage DataFrame"""
        required_workers = self.data_manager.get_required_workers()
        data = []
        for day_schedule in schedule:
            for label, names in day_schedule.shifts.items():
                data.append({
                    'Date': day_schedule.calendar_date.isoformat(),
                    'Day': day_schedule.day,
                    'Shift': label,
                    'Assigned': len(names),
                    'Required': required_workers.get(label, 0),
                    'Employees': ", ".join(names)
                })
        return pd.DataFrame(data, columns=['Date', 'Day', 'Shift', 'Assigned', 'Required', 'Employees'])

    def export_schedule_pdf(self, schedule: Schedule, output_path: str) -> bool:
        """Export schedule grid to a landscape PDF"""
        try:
            doc = SimpleDocTemplate(
                output_path,
                pagesize=landscape(A4),
                rightMargin=0.5*inch,
                leftMargin=0.5*inch,
                topMargin=0.5*inch,
                bottomMargin=0.5*inch
            )

            story = [Paragraph(REPORT_TITLE, self.styles['CustomTitle']), Spacer(1, 10)]

            schedule_df = self.create_schedule_dataframe(schedule)
            day_columns = list(schedule_df.columns[1:])

            if not day_columns:
                story.append(Paragraph("No days scheduled.", self.styles['Normal']))

            # Wide ranges are split into blocks of columns, one block per page
            for start in range(0, len(day_columns), PDF_DAYS_PER_PAGE):
                if start:
                    story.append(PageBreak())
                block = [NAME_COLUMN] + day_columns[start:start + PDF_DAYS_PER_PAGE]
                story.append(self._create_schedule_table(schedule_df[block]))

            story.append(Spacer(1, 20))
            story.extend(self._create_coverage_content(schedule))

            doc.build(story)
            return True

        except Exception as e:
            logger.error(f"Error creating PDF: {e}", exc_info=True)
            return False

    def _create_schedule_table(self, frame: pd.DataFrame) -> Table:
        """Create grid table for PDF"""
        data = [list(frame.columns)] + frame.astype(str).values.tolist()

        col_widths = [1.3*inch] + [1.0*inch] * (len(frame.columns) - 1)
        table = Table(data, colWidths=col_widths, repeatRows=1)

        style = [
            ('BACKGROUND', (0, 0), (-1, 0), colors.grey),
            ('TEXTCOLOR', (0, 0), (-1, 0), colors.whitesmoke),
            ('ALIGN', (0, 0), (-1, -1), 'CENTER'),
            ('ALIGN', (0, 1), (0, -1), 'LEFT'),
            ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
            ('FONTSIZE', (0, 0), (-1, -1), 8),
            ('GRID', (0, 0), (-1, -1), 1, colors.black),
            ('VALIGN', (0, 0), (-1, -1), 'MIDDLE'),
        ]

        # Shade days off
        for row_index, row in enumerate(data[1:], 1):
            for col_index, value in enumerate(row[1:], 1):
                if value == OFF_LABEL:
                    style.append(('BACKGROUND', (col_index, row_index), (col_index, row_index), colors.lightgrey))

        table.setStyle(TableStyle(style))
        return table

    def _create_coverage_content(self, schedule: Schedule) -> List:
        """Create coverage summary content for PDF"""
        content = [Paragraph("Coverage Summary", self.styles['CustomHeading'])]

        understaffed = find_understaffed(schedule, self.data_manager.get_required_workers())
        if not understaffed:
            content.append(Paragraph("All shifts fully staffed.", self.styles['Normal']))
            return content

        data = [['Date', 'Shift', 'Assigned', 'Required']]
        for slot in understaffed:
            data.append([slot['date'], slot['shift'], str(slot['assigned']), str(slot['required'])])

        table = Table(data, colWidths=[1.5*inch, 2.5*inch, 1*inch, 1*inch], repeatRows=1)
        table.setStyle(TableStyle([
            ('BACKGROUND', (0, 0), (-1, 0), colors.grey),
            ('TEXTCOLOR', (0, 0), (-1, 0), colors.whitesmoke),
            ('ALIGN', (0, 0), (-1, -1), 'LEFT'),
            ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
            ('GRID', (0, 0), (-1, -1), 1, colors.black),
            ('BACKGROUND', (0, 1), (-1, -1), colors.lightyellow),
        ]))
        content.append(table)
        return content

    def export_schedule_excel(self, schedule: Schedule, output_path: str) -> bool:
        """Export schedule to Excel format"""
        try:
            with pd.ExcelWriter(output_path, engine='openpyxl') as writer:
                self.create_schedule_dataframe(schedule).to_excel(writer, sheet_name='Schedule', index=False)
                self.create_coverage_dataframe(schedule).to_excel(writer, sheet_name='Coverage', index=False)

                self._format_excel_worksheets(writer)

            return True

        except Exception as e:
            logger.error(f"Error exporting to Excel: {e}", exc_info=True)
            return False

    def _format_excel_worksheets(self, writer):
        """Format Excel worksheets"""
        from openpyxl.styles import PatternFill, Font

        header_fill = PatternFill(start_color="366092", end_color="366092", fill_type="solid")
        header_font = Font(color="FFFFFF", bold=True)

        for worksheet in writer.sheets.values():
            for cell in worksheet[1]:
                cell.fill = header_fill
                cell.font = header_font

            # Auto-adjust column widths
            for column in worksheet.columns:
                column_letter = column[0].column_letter
                max_length = max((len(str(cell.value)) for cell in column if cell.value is not None), default=0)
                worksheet.column_dimensions[column_letter].width = min(max_length + 2, 50)

    def export_schedule_csv(self, schedule: Schedule, output_path: str) -> bool:
        """Export schedule to CSV format"""
        try:
            self.create_schedule_dataframe(schedule).to_csv(output_path, index=False)
            return True

        except Exception as e:
            logger.error(f"Error exporting to CSV: {e}", exc_info=True)
            return False


class ExportManager:
    """Manager class for handling all export operations"""

    def __init__(self, data_manager: DataManager):
        self.data_manager = data_manager
        self.report_generator = ReportGenerator(data_manager)

    def export_schedule(self, schedule: Schedule, format_type: str, output_path: str) -> bool:
        """Export schedule in specified format and remember the file on success"""
        format_type = format_type.lower()
        if format_type == 'pdf':
            success = self.report_generator.export_schedule_pdf(schedule, output_path)
        elif format_type == 'excel':
            success = self.report_generator.export_schedule_excel(schedule, output_path)
        elif format_type == 'csv':
            success = self.report_generator.export_schedule_csv(schedule, output_path)
        else:
            raise ValueError(f"Unsupported format: {format_type}")

        if success:
            self.data_manager.record_generated_file(Path(output_path).name, format_type, output_path)
            logger.info(f"Exported {format_type} schedule to {output_path}")
        return success

    def get_default_filename(self, format_type: str, export_date: Optional[date] = None) -> str:
        """Generate default filename for export, dated by the day of export"""
        extension = EXPORT_EXTENSIONS.get(format_type.lower())
        if extension is None:
            raise ValueError(f"Unsupported format: {format_type}")
        stamp = (export_date or datetime.now().date()).strftime("%Y%m%d")
        return f"{EXPORT_FILE_PREFIX}_{stamp}.{extension}"

    def batch_export(self, schedule_result: ScheduleResult, output_dir: str,
                     formats: List[str] = None) -> Dict[str, Any]:
        """Export schedule in multiple formats; returns format -> written path or False"""
        if formats is None:
            formats = ['pdf', 'excel', 'csv']

        results = {}
        output_path = Path(output_dir)
        output_path.mkdir(parents=True, exist_ok=True)

        for format_type in formats:
            file_path = output_path / self.get_default_filename(format_type)

            try:
                success = self.export_schedule(schedule_result.schedule, format_type, str(file_path))
                results[format_type] = str(file_path) if success else False
            except ValueError as e:
                logger.error(f"Error exporting {format_type}: {e}", exc_info=True)
                results[format_type] = False

        return results
