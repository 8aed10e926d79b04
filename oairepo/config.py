"""
Repository configuration.

Values come from keyword arguments or from OAIPMH_* environment variables.
"""

import os
from dataclasses import dataclass, field
from typing import List, Mapping, Optional

from .datestamp import Granularity, UTCdatetime
from .exceptions import DuplicateEntryError, EmptyCollectionError
from .metadata import Description
from .values import Email

DELETED_RECORD_POLICIES = ('no', 'transient', 'persistent')


@dataclass
class RepositoryConfig:
    """
    Settings describing the repository in Identify responses.

    Example:
        >>> config = RepositoryConfig('https://repo.example.org/oai', ['admin@example.org'])
        >>> config.granularity
        <Granularity.DATE_TIME_SECOND: 'YYYY-MM-DDThh:mm:ssZ'>
    """

    base_url: str
    admin_emails: List[str]
    repository_name: str = 'OAI-PMH Repository'
    earliest_datestamp: str = '1970-01-01T00:00:00Z'
    deleted_record: str = 'no'
    granularity: Granularity = Granularity.DATE_TIME_SECOND
    descriptions: List[Description] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.base_url:
            raise ValueError("base_url must not be empty")
        if not self.base_url.startswith(('http://', 'https://')):
            raise ValueError("base_url must start with http:// or https://")
        if self.deleted_record not in DELETED_RECORD_POLICIES:
            raise ValueError(
                f"deleted_record must be one of {', '.join(DELETED_RECORD_POLICIES)}"
            )
        self.granularity = Granularity(self.granularity)
        # raises ValidationError on a malformed datestamp
        UTCdatetime.from_string(self.earliest_datestamp)
        self._check_admin_emails()
        for description in self.descriptions:
            if not isinstance(description, Description):
                raise TypeError(
                    f"descriptions must contain Description, got {type(description).__name__}"
                )

    def _check_admin_emails(self) -> None:
        """At least one well-formed address, none repeated."""
        if isinstance(self.admin_emails, str):
            self.admin_emails = [self.admin_emails]
        self.admin_emails = list(self.admin_emails)
        if not self.admin_emails:
            raise EmptyCollectionError(
                'admin_emails', "At least one administrator email must be provided"
            )
        seen = set()
        for address in self.admin_emails:
            Email(address)
            if address in seen:
                raise DuplicateEntryError('admin email', address)
            seen.add(address)

    @classmethod
    def from_env(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        **overrides
    ) -> 'RepositoryConfig':
        """
        Build configuration from environment variables.

        Reads OAIPMH_BASE_URL, OAIPMH_REPOSITORY_NAME, OAIPMH_ADMIN_EMAILS
        (comma-separated), OAIPMH_EARLIEST_DATESTAMP, OAIPMH_DELETED_RECORD
        and OAIPMH_GRANULARITY. Keyword overrides that are not None win.

        Args:
            environ: Mapping to read from (default: os.environ)
            **overrides: Explicit values for any field

        Returns:
            RepositoryConfig instance

        Raises:
            ValueError: If the resulting configuration is invalid
        """
        env = os.environ if environ is None else environ
        values = {}

        if env.get('OAIPMH_BASE_URL'):
            values['base_url'] = env['OAIPMH_BASE_URL']
        if env.get('OAIPMH_REPOSITORY_NAME'):
            values['repository_name'] = env['OAIPMH_REPOSITORY_NAME']
        if env.get('OAIPMH_ADMIN_EMAILS'):
            values['admin_emails'] = [
                email.strip() for email in env['OAIPMH_ADMIN_EMAILS'].split(',')
                if email.strip()
            ]
        if env.get('OAIPMH_EARLIEST_DATESTAMP'):
            values['earliest_datestamp'] = env['OAIPMH_EARLIEST_DATESTAMP']
        if env.get('OAIPMH_DELETED_RECORD'):
            values['deleted_record'] = env['OAIPMH_DELETED_RECORD']
        if env.get('OAIPMH_GRANULARITY'):
            values['granularity'] = env['OAIPMH_GRANULARITY']

        values.update({k: v for k, v in overrides.items() if v is not None})

        if 'base_url' not in values:
            raise ValueError("base_url required. Pass it or set OAIPMH_BASE_URL.")
        if 'admin_emails' not in values:
            raise ValueError("admin_emails required. Pass them or set OAIPMH_ADMIN_EMAILS.")
        return cls(**values)
