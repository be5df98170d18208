"""Custom exceptions for AgentLinks."""


class AgentLinksError(Exception):
    """Base class for AgentLinks errors."""

    pass


class StoreNotInitializedError(AgentLinksError):
    """Raised when the link store is used before ``open()`` or after ``close()``."""

    def __init__(self, operation: str | None = None):
        self.operation = operation
        message = "Link store is not initialized; call open() first"
        if operation:
            message += f" (attempted: {operation})"
        super().__init__(message)


class CommitMetadataError(AgentLinksError):
    """Raised when commit metadata cannot be read from git."""

    def __init__(self, message: str, repo_path: str | None = None):
        self.repo_path = repo_path
        if repo_path:
            message = f"{message} (repo: {repo_path})"
        super().__init__(message)


class NotAGitRepositoryError(CommitMetadataError):
    """Raised when the target directory is not inside a git work tree."""

    def __init__(self, repo_path: str):
        super().__init__("Not a git repository", repo_path=repo_path)
