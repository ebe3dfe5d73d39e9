from .job_scheduler import FunctionJob, JobScheduler

__all__ = ["FunctionJob", "JobScheduler"]
