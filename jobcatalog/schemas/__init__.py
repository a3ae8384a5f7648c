from jobcatalog.schemas.job import JobFilter, JobOut, ScrapeRunOut, SourceOut
from jobcatalog.schemas.listing import Listing, Source
from jobcatalog.schemas.match import MatchResult
from jobcatalog.schemas.resume import ResumeProfile

__all__ = [
    "Listing",
    "Source",
    "JobOut",
    "SourceOut",
    "JobFilter",
    "ScrapeRunOut",
    "ResumeProfile",
    "MatchResult",
]
