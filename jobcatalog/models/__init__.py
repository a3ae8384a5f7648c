from jobcatalog.models.job import Job, JobSource
from jobcatalog.models.scrape_run import ScrapeRun

__all__ = ["Job", "JobSource", "ScrapeRun"]
