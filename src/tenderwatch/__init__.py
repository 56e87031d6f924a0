"""
TenderWatch - Recurring tender monitoring and notification pipeline.

Scrapes procurement sources on a schedule, deduplicates listings against
what has already been seen, stores them in a local database and notifies
operators about new tenders and approaching deadlines.
"""

__version__ = "0.1.0"
__app_name__ = "tenderwatch"
