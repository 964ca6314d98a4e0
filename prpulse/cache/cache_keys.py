"""
Cache key management.

Centralized cache key definitions to:
- Keep the keys written by readers and the patterns cleared by webhooks in step
- Document cache structure
"""


class CacheKeys:
    """
    Centralized cache key definitions.

    Naming convention: {domain}:{scope}:{variant}

    Examples:
        - prs:acme/widgets,acme/gears:open -> PR listing for two repositories
        - prs:acme/widgets:all             -> PR listing for one repository
    """

    PREFIX_PRS = "prs"

    # TTLs (in seconds)
    TTL_DEFAULT = 60 * 5

    @staticmethod
    def pull_requests(repositories: str, state: str = "all") -> str:
        """
        Cache key for a PR listing.

        Args:
            repositories: Comma-separated "owner/name" list exactly as requested
            state: GitHub state filter ('open', 'closed', 'all')
        """
        return f"prs:{repositories}:{state}"

    # Pattern keys for bulk invalidation
    @staticmethod
    def repository_pull_requests_pattern(repository_full_name: str) -> str:
        """Pattern matching every PR listing that includes a repository."""
        return f"prs:*{repository_full_name}*"
