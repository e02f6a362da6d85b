"""
Custom Exceptions
Error hierarchy for the deep dive research engine
"""


class DeepDiveError(Exception):
    """Base error for the research engine"""

    def __init__(self, message: str, details: dict = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self):
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigurationError(DeepDiveError):
    """Configuration or reference-data error (fatal, never retried)"""
    pass


class StorageError(DeepDiveError):
    """Job state store error"""
    pass


class JobNotFoundError(StorageError):
    """Referenced job does not exist"""

    def __init__(self, job_id: str, **kwargs):
        super().__init__(f"Job not found: {job_id}", kwargs)
        self.job_id = job_id


class DuplicateJobError(StorageError):
    """A job already exists for the (user, period) pair"""

    def __init__(self, user_id: str, period: str, **kwargs):
        super().__init__("Job already exists for user and period", {"period": period, **kwargs})
        self.user_id = user_id
        self.period = period


class DuplicateReportError(StorageError):
    """A report already exists for the job"""

    def __init__(self, job_id: str, **kwargs):
        super().__init__(f"Report already exists for job: {job_id}", kwargs)
        self.job_id = job_id


class DeliveryError(DeepDiveError):
    """Notification delivery error"""

    def __init__(self, message: str, channel: str = None, **kwargs):
        super().__init__(message, kwargs)
        self.channel = channel
