"""
Utility functions for exporting data to CSV format.
Used by HR staff to download the (filtered) application and job tables.
"""

import csv
import io
from datetime import datetime
from typing import Dict, Iterable

from recruitdesk.filters import get_person_display_name
from recruitdesk.recruitment import stage_label, status_to_stage


def _fmt(value, pattern: str = "%Y-%m-%d %H:%M:%S") -> str:
    return value.strftime(pattern) if isinstance(value, datetime) else ""


def export_applications_to_csv(applications: Iterable) -> str:
    """
    Export applications to CSV.

    Args:
        applications: ApplicationRecord objects with their job and applicant joined

    Returns:
        CSV string ready to be downloaded
    """

    output = io.StringIO()

    fieldnames = [
        'Application ID',
        'Candidate Name',
        'Candidate Email',
        'Phone',
        'Gender',
        'Age',
        'Wilaya',
        'Rating',
        'Skills',
        'Job Title',
        'Status',
        'Stage',
        'Applied Date',
        'Interview Date',
        'CV URL',
    ]

    writer = csv.DictWriter(output, fieldnames=fieldnames)
    writer.writeheader()

    for app in applications:
        applicant = app.applicant
        writer.writerow({
            'Application ID': app.id,
            'Candidate Name': get_person_display_name(applicant),
            'Candidate Email': applicant.email if applicant else '',
            'Phone': (applicant.phone or '') if applicant else '',
            'Gender': (applicant.gender or '') if applicant else '',
            'Age': applicant.age if applicant and applicant.age is not None else '',
            'Wilaya': (applicant.wilaya or '') if applicant else '',
            'Rating': applicant.rating if applicant and applicant.rating is not None else '',
            'Skills': ', '.join(applicant.skills) if applicant else '',
            'Job Title': app.job.title if app.job else '',
            'Status': app.status,
            'Stage': stage_label(status_to_stage(app.status)),
            'Applied Date': _fmt(app.applied_at),
            'Interview Date': _fmt(app.interview_date),
            'CV URL': app.cv_url or '',
        })

    csv_string = output.getvalue()
    output.close()

    return csv_string


def export_jobs_to_csv(jobs: Iterable) -> str:
    """
    Export jobs to CSV.

    Args:
        jobs: JobWithCounts objects

    Returns:
        CSV string ready to be downloaded
    """

    output = io.StringIO()

    fieldnames = [
        'Job ID',
        'Title',
        'Location',
        'Job Type',
        'Salary Range',
        'Status',
        'Created Date',
        'Deadline',
        'Deadline Passed',
        'Max Applicants',
        'Application Count',
    ]

    writer = csv.DictWriter(output, fieldnames=fieldnames)
    writer.writeheader()

    for job in jobs:
        writer.writerow({
            'Job ID': job.id,
            'Title': job.title,
            'Location': job.location,
            'Job Type': job.job_type,
            'Salary Range': job.salary_range or '',
            'Status': job.status,
            'Created Date': _fmt(job.created_at, '%Y-%m-%d'),
            'Deadline': _fmt(job.deadline, '%Y-%m-%d'),
            'Deadline Passed': 'yes' if job.is_deadline_passed else 'no',
            'Max Applicants': job.max_applicants if job.max_applicants is not None else '',
            'Application Count': job.total_applications,
        })

    csv_string = output.getvalue()
    output.close()

    return csv_string


def create_csv_response_headers(filename: str) -> Dict[str, str]:
    """
    Create headers for CSV file download response.

    Args:
        filename: Name of the CSV file (without .csv extension)

    Returns:
        Dictionary of headers for FastAPI Response
    """

    return {
        "Content-Disposition": f"attachment; filename={filename}.csv",
    }
