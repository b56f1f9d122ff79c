"""Durable holder of the long-lived session credential."""

import logging
from typing import Optional

from infrastructure.repositories.sqlite_credential_repository import SQLiteCredentialRepository

log = logging.getLogger(__name__)

FINAL_TOKEN_KEY = "final_auth_token"


class CredentialStore:
    def __init__(self, repo: SQLiteCredentialRepository, key: str = FINAL_TOKEN_KEY):
        self.repo = repo
        self.key = key

    def open(self):
        self.repo.init_db()

    def load(self) -> Optional[str]:
        return self.repo.get(self.key) or None

    def save(self, token: str):
        self.repo.set(self.key, token)
        log.info("Long-lived credential persisted.")

    def erase(self):
        self.repo.delete(self.key)
        log.info("Persisted credential erased.")
