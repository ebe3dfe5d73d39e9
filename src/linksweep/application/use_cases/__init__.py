from .link_checker import LINK_CHECKER_JOB, LinkChecker, LinkCheckJob

__all__ = ["LINK_CHECKER_JOB", "LinkCheckJob", "LinkChecker"]
