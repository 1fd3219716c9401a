import logging
from dataclasses import dataclass
from typing import Optional

from common.settings import Settings
from domain.classifier.llm_client import LLMClient
from domain.classifier.tier_classifier import TierClassifier
from infra.github.commit_source import GitHubCommitSource, build_http_client
from infra.ledger.ledger_repo import FileLedgerIO


@dataclass
class TrackerClients:
    source: GitHubCommitSource
    classifier: TierClassifier
    ledger: FileLedgerIO
    llm: Optional[LLMClient] = None

    def close(self) -> None:
        self.source.close()
        if self.llm is not None:
            self.llm.close()


class ClientFactory:
    @staticmethod
    def create_commit_source(owner: str, settings: Settings) -> GitHubCommitSource:
        http = build_http_client(settings.github_token, settings.http_timeout)
        return GitHubCommitSource(owner, http)

    @staticmethod
    def create_llm_client(settings: Settings) -> Optional[LLMClient]:
        if not settings.classifier_api_key:
            logging.warning(
                "No OPENAI_KEY found. Untagged commits will default to tiny."
            )
            return None
        return LLMClient(
            settings.classifier_api_key,
            url=settings.classifier_url,
            model=settings.classifier_model,
            timeout=settings.classifier_timeout,
        )

    @staticmethod
    def create_ledger_io(
        owner: str, settings: Settings, out_dir: Optional[str] = None
    ) -> FileLedgerIO:
        return FileLedgerIO(out_dir or settings.ledger_dir, owner)

    @staticmethod
    def create_all(
        owner: str, settings: Settings, out_dir: Optional[str] = None
    ) -> TrackerClients:
        llm = ClientFactory.create_llm_client(settings)
        return TrackerClients(
            source=ClientFactory.create_commit_source(owner, settings),
            classifier=TierClassifier(llm),
            ledger=ClientFactory.create_ledger_io(owner, settings, out_dir),
            llm=llm,
        )
