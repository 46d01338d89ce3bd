"""
Reporting and Export Module for Shift Roster

Handles CSV, Excel and PDF export of generated schedule versions. The CSV
layout is the same grid that history ingestion reads back, so an exported
month can seed the generation of the next one.
"""

import calendar
import csv
import json
import logging
from datetime import date
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple
from xml.sax.saxutils import escape

import pandas as pd
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import inch
from reportlab.platypus import SimpleDocTemplate, Table, TableStyle, Paragraph, Spacer, PageBreak

from .models import DailySchedule, ScheduleVersion
from .scheduler_logic import ShiftScheduler

logger = logging.getLogger(__name__)

WEEKDAY_HEADERS = ['Sun', 'Mon', 'Tue', 'Wed', 'Thu', 'Fri', 'Sat']
FILE_EXTENSIONS = {'csv': 'csv', 'excel': 'xlsx', 'pdf': 'pdf', 'json': 'json'}


class ReportGenerator:
    """Main class for generating reports and exports"""

    def __init__(self, scheduler: ShiftScheduler):
        self.scheduler = scheduler
        self.styles = getSampleStyleSheet()
        self._setup_custom_styles()

    def _setup_custom_styles(self):
        """Setup custom report styles"""
        self.styles.add(ParagraphStyle(
            name='CustomTitle',
            parent=self.styles['Heading1'],
            fontSize=18,
            spaceAfter=30,
            alignment=1  # Center alignment
        ))

        self.styles.add(ParagraphStyle(
            name='CustomHeading',
            parent=self.styles['Heading2'],
            fontSize=14,
            spaceAfter=12
        ))

        self.styles.add(ParagraphStyle(
            name='CalendarCell',
            parent=self.styles['Normal'],
            fontSize=7,
            leading=9
        ))

    def worker_name(self, worker_id: Optional[str]) -> str:
        """Display name for a worker id ('' for an empty slot)"""
        if not worker_id:
            return ''
        worker = self.scheduler.get_worker(worker_id)
        return worker.name if worker else 'Unknown'

    def shift_times(self) -> str:
        config = self.scheduler.config
        return (f"Day {config.day_start_time}-{config.day_end_time}, "
                f"Night {config.night_start_time}-{config.night_end_time}")

    @staticmethod
    def max_headcounts(version: ScheduleVersion) -> Tuple[int, int]:
        """Largest day and night headcount seen across all dates"""
        max_day = max((len(d.day_shift) for d in version.schedule), default=0)
        max_night = max((len(d.night_shift) for d in version.schedule), default=0)
        return max_day, max_night

    # Tabular exports
    def create_schedule_dataframe(self, version: ScheduleVersion, day_label: str = "Day Shift Worker",
                                  night_label: str = "Night Shift Worker") -> pd.DataFrame:
        """Schedule grid padded to the maximum headcount of each shift"""
        max_day, max_night = self.max_headcounts(version)
        columns = ['Date', 'Is Padding']
        columns += [f"{day_label} {i + 1}" for i in range(max_day)]
        columns += [f"{night_label} {i + 1}" for i in range(max_night)]

        rows = []
        for daily in version.schedule:
            row = [daily.date, 'Yes' if daily.is_padding else 'No']
            row += [self.worker_name(self._slot(daily.day_shift, i)) for i in range(max_day)]
            row += [self.worker_name(self._slot(daily.night_shift, i)) for i in range(max_night)]
            rows.append(row)

        return pd.DataFrame(rows, columns=columns)

    @staticmethod
    def _slot(assigned: Sequence[str], index: int) -> Optional[str]:
        return assigned[index] if index < len(assigned) else None

    def create_statistics_dataframe(self, version: ScheduleVersion) -> pd.DataFrame:
        """Per-worker statistics for the target month"""
        data = []
        for worker in self.scheduler.workers:
            stats = version.stats.get(worker.id)
            if stats is None:
                continue
            data.append({
                'Worker': worker.name,
                'Preference': worker.preference.value,
                'Day_Shifts': stats.day_shifts,
                'Night_Shifts': stats.night_shifts,
                'Total_Shifts': stats.total_shifts,
                'Target_Shifts': worker.target_shifts if worker.target_shifts is not None else '',
                'Longest_Streak': stats.longest_streak,
            })
        return pd.DataFrame(data)

    def create_worker_dataframe(self) -> pd.DataFrame:
        data = []
        for worker in self.scheduler.workers:
            data.append({
                'ID': worker.id,
                'Name': worker.name,
                'Preference': worker.preference.value,
                'Days_Off': ', '.join(WEEKDAY_HEADERS[d] for d in sorted(worker.days_off)),
                'Target_Shifts': worker.target_shifts if worker.target_shifts is not None else '',
            })
        return pd.DataFrame(data)

    def export_schedule_csv(self, version: ScheduleVersion, output_path: str) -> bool:
        """Export schedule grid to CSV (UTF-8 with byte-order mark)"""
        try:
            schedule_df = self.create_schedule_dataframe(version)
            schedule_df.to_csv(output_path, index=False, encoding='utf-8-sig',
                               quoting=csv.QUOTE_NONNUMERIC)
            return True

        except Exception as e:
            logger.error(f"Error exporting to CSV: {e}", exc_info=True)
            return False

    def export_schedule_json(self, version: ScheduleVersion, output_path: str) -> bool:
        """Export a version together with the roster and configuration it was generated from"""
        try:
            payload = {
                "version": version.to_dict(),
                "employees": [worker.to_dict() for worker in self.scheduler.workers],
                "config": self.scheduler.config.to_dict(),
            }
            with open(output_path, 'w', encoding='utf-8') as f:
                json.dump(payload, f, indent=2)
            return True

        except Exception as e:
            logger.error(f"Error exporting to JSON: {e}", exc_info=True)
            return False

    def export_schedule_excel(self, version: ScheduleVersion, output_path: str) -> bool:
        """Export schedule, statistics and workers to an Excel workbook"""
        try:
            with pd.ExcelWriter(output_path, engine='openpyxl') as writer:
                schedule_df = self.create_schedule_dataframe(version, "Day Worker", "Night Worker")
                schedule_df.to_excel(writer, sheet_name='Schedule', index=False)

                stats_df = self.create_statistics_dataframe(version)
                stats_df.to_excel(writer, sheet_name='Statistics', index=False)

                worker_df = self.create_worker_dataframe()
                worker_df.to_excel(writer, sheet_name='Workers', index=False)

                self._format_excel_worksheets(writer, version)

            return True

        except Exception as e:
            logger.error(f"Error exporting to Excel: {e}", exc_info=True)
            return False

    def _format_excel_worksheets(self, writer, version: ScheduleVersion):
        """Header styling, padding row shading and column widths"""
        from openpyxl.styles import PatternFill, Font

        header_fill = PatternFill(start_color="366092", end_color="366092", fill_type="solid")
        header_font = Font(color="FFFFFF", bold=True)
        padding_fill = PatternFill(start_color="F1F5F9", end_color="F1F5F9", fill_type="solid")

        for sheet_name, worksheet in writer.sheets.items():
            for cell in worksheet[1]:
                cell.fill = header_fill
                cell.font = header_font

            for column in worksheet.columns:
                max_length = max(len(str(cell.value)) if cell.value is not None else 0 for cell in column)
                worksheet.column_dimensions[column[0].column_letter].width = min(max_length + 2, 50)

        schedule_ws = writer.sheets['Schedule']
        for row_idx, daily in enumerate(version.schedule, start=2):
            if daily.is_padding:
                for cell in schedule_ws[row_idx]:
                    cell.fill = padding_fill

    # PDF export
    def export_calendar_pdf(self, version: ScheduleVersion, output_path: str) -> bool:
        """Export calendar grid and statistics to PDF"""
        try:
            doc = SimpleDocTemplate(
                output_path,
                pagesize=landscape(A4),
                rightMargin=0.5*inch,
                leftMargin=0.5*inch,
                topMargin=0.5*inch,
                bottomMargin=0.5*inch
            )

            story = []
            title_text = f"Shift Schedule - {calendar.month_name[version.month + 1]} {version.year}"
            story.append(Paragraph(title_text, self.styles['CustomTitle']))
            story.append(Paragraph(f"Shift Times: {self.shift_times()}", self.styles['Normal']))
            story.append(Spacer(1, 20))

            story.append(self._create_calendar_table(version))

            story.append(PageBreak())
            story.extend(self._create_statistics_content(version))

            doc.build(story)
            return True

        except Exception as e:
            logger.error(f"Error creating PDF: {e}", exc_info=True)
            return False

    def _create_calendar_table(self, version: ScheduleVersion) -> Table:
        """Create calendar table for PDF, one row per week"""
        data = [list(WEEKDAY_HEADERS)]
        weeks = [version.schedule[i:i + 7] for i in range(0, len(version.schedule), 7)]
        for week in weeks:
            data.append([self._format_calendar_cell(daily) for daily in week])

        table = Table(data, colWidths=[1.5*inch]*7)
        style = [
            ('BACKGROUND', (0, 0), (-1, 0), colors.grey),
            ('TEXTCOLOR', (0, 0), (-1, 0), colors.whitesmoke),
            ('ALIGN', (0, 0), (-1, 0), 'CENTER'),
            ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
            ('FONTSIZE', (0, 0), (-1, 0), 10),
            ('BOTTOMPADDING', (0, 0), (-1, 0), 8),
            ('GRID', (0, 0), (-1, -1), 1, colors.black),
            ('VALIGN', (0, 0), (-1, -1), 'TOP'),
        ]
        for week_idx, week in enumerate(weeks, start=1):
            for day_idx, daily in enumerate(week):
                if daily.is_padding:
                    style.append(('BACKGROUND', (day_idx, week_idx), (day_idx, week_idx), colors.lightgrey))
        table.setStyle(TableStyle(style))

        return table

    def _format_calendar_cell(self, daily: DailySchedule) -> Paragraph:
        """Format individual calendar cell content"""
        day_names = ', '.join(escape(self.worker_name(w)) for w in daily.day_shift) or '---'
        night_names = ', '.join(escape(self.worker_name(w)) for w in daily.night_shift) or '---'
        day_number = date.fromisoformat(daily.date).day
        content = f"<b>{day_number}</b><br/>Day: {day_names}<br/>Night: {night_names}"
        return Paragraph(content, self.styles['CalendarCell'])

    def _create_statistics_content(self, version: ScheduleVersion) -> List:
        """Create statistics content for PDF"""
        content = [Paragraph("Schedule Statistics", self.styles['CustomTitle']), Spacer(1, 20)]

        slot_stats = self.scheduler.get_schedule_statistics(version)
        content.append(Paragraph("Month Summary", self.styles['CustomHeading']))
        summary_data = [
            ['Metric', 'Value'],
            ['Workers', str(len(self.scheduler.workers))],
            ['Required Shifts', str(slot_stats['required_shifts'])],
            ['Assigned Shifts', str(slot_stats['assigned_shifts'])],
            ['Unfilled Day Slots', str(slot_stats['unfilled_day_slots'])],
            ['Unfilled Night Slots', str(slot_stats['unfilled_night_slots'])],
        ]
        summary_table = Table(summary_data, colWidths=[3*inch, 2*inch])
        summary_table.setStyle(TableStyle([
            ('BACKGROUND', (0, 0), (-1, 0), colors.grey),
            ('TEXTCOLOR', (0, 0), (-1, 0), colors.whitesmoke),
            ('ALIGN', (0, 0), (-1, -1), 'LEFT'),
            ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
            ('GRID', (0, 0), (-1, -1), 1, colors.black),
        ]))
        content.append(summary_table)
        content.append(Spacer(1, 20))

        content.append(Paragraph("Individual Worker Statistics", self.styles['CustomHeading']))
        stats_df = self.create_statistics_dataframe(version)
        worker_data = [['Worker', 'Preference', 'Day Shifts', 'Night Shifts', 'Total', 'Target', 'Longest Streak']]
        worker_data += [[str(value) for value in row] for row in stats_df.itertuples(index=False)]

        worker_table = Table(worker_data, colWidths=[1.6*inch, 1.0*inch, 0.9*inch, 0.9*inch, 0.7*inch, 0.7*inch, 1.1*inch])
        worker_table.setStyle(TableStyle([
            ('BACKGROUND', (0, 0), (-1, 0), colors.grey),
            ('TEXTCOLOR', (0, 0), (-1, 0), colors.whitesmoke),
            ('ALIGN', (0, 0), (-1, -1), 'CENTER'),
            ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
            ('GRID', (0, 0), (-1, -1), 1, colors.black),
            ('FONTSIZE', (0, 0), (-1, -1), 8),
            ('VALIGN', (0, 0), (-1, -1), 'MIDDLE'),
        ]))
        content.append(worker_table)

        return content

    def create_summary(self, version: ScheduleVersion) -> str:
        """Create text summary of a generated version"""
        slot_stats = self.scheduler.get_schedule_statistics(version)
        violations = self.scheduler.validate_schedule(version)

        lines = [
            f"SCHEDULE SUMMARY - {version.name}",
            "",
            f"• Workers: {len(self.scheduler.workers)}",
            f"• Shift Times: {self.shift_times()}",
            f"• Required Shifts: {slot_stats['required_shifts']}",
            f"• Assigned Shifts: {slot_stats['assigned_shifts']} "
            f"(day {slot_stats['day_shifts']}, night {slot_stats['night_shifts']})",
            f"• Unfilled Slots: day {slot_stats['unfilled_day_slots']}, night {slot_stats['unfilled_night_slots']}",
            f"• Constraint Violations: {len(violations)}",
            "",
            "Workers:",
        ]
        for worker in self.scheduler.workers:
            stats = version.stats.get(worker.id)
            if stats is None:
                continue
            target = f" / target {worker.target_shifts}" if worker.target_shifts else ""
            lines.append(f"• {worker.name}: {stats.total_shifts} shifts{target} "
                         f"(day {stats.day_shifts}, night {stats.night_shifts}, "
                         f"longest streak {stats.longest_streak})")

        return "\n".join(lines)


class ExportManager:
    """Manager class for handling all export operations"""

    def __init__(self, scheduler: ShiftScheduler):
        self.scheduler = scheduler
        self.report_generator = ReportGenerator(scheduler)

    def export_schedule(self, version: ScheduleVersion, format_type: str, output_path: str) -> bool:
        """Export a version in the specified format"""
        if format_type.lower() == 'pdf':
            return self.report_generator.export_calendar_pdf(version, output_path)
        elif format_type.lower() == 'excel':
            return self.report_generator.export_schedule_excel(version, output_path)
        elif format_type.lower() == 'csv':
            return self.report_generator.export_schedule_csv(version, output_path)
        elif format_type.lower() == 'json':
            return self.report_generator.export_schedule_json(version, output_path)
        else:
            raise ValueError(f"Unsupported format: {format_type}")

    def get_default_filename(self, version: ScheduleVersion, format_type: str) -> str:
        """Generate default filename for export"""
        extension = FILE_EXTENSIONS.get(format_type.lower())
        if extension is None:
            raise ValueError(f"Unsupported format: {format_type}")
        return f"schedule_{version.month + 1}_{version.year}.{extension}"

    def batch_export(self, version: ScheduleVersion, output_dir: str,
                     formats: Optional[List[str]] = None) -> Dict[str, bool]:
        """Export a version in multiple formats"""
        if formats is None:
            formats = ['csv', 'excel', 'pdf']

        results = {}
        output_path = Path(output_dir)
        output_path.mkdir(parents=True, exist_ok=True)

        for format_type in formats:
            file_path = output_path / self.get_default_filename(version, format_type)
            results[format_type] = self.export_schedule(version, format_type, str(file_path))
            if results[format_type]:
                logger.info(f"Exported {format_type} to {file_path}")

        return results
