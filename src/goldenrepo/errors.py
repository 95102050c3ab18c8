"""Domain errors for golden-repo-sync."""


class GoldenRepoError(RuntimeError):
    """Raised when the synchronization cannot continue safely."""
