"""TimeLink: reconcile Toggl time entries with Jira issues"""

__version__ = "0.1.0"
