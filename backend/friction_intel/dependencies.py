"""Injectable collaborators for the HTTP layer. Tests override these."""

from collections.abc import Callable

from fastapi import Depends
from sqlalchemy.ext.asyncio import async_sessionmaker

from friction_intel.database import async_session_factory
from friction_intel.friction.classifier import Classifier, FrictionClassifier
from friction_intel.friction.pacing import RequestPacer
from friction_intel.locks import AccountLockRegistry, default_registry
from friction_intel.tickets.jira_client import JiraClient


def get_classifier() -> Classifier:
    return FrictionClassifier()


def get_pacer_factory() -> Callable[[], RequestPacer]:
    return RequestPacer.from_settings


def get_pacer(pacer_factory: Callable[[], RequestPacer] = Depends(get_pacer_factory)) -> RequestPacer:
    return pacer_factory()


def get_lock_registry() -> AccountLockRegistry:
    return default_registry


def get_session_factory() -> async_sessionmaker:
    return async_session_factory


def get_jira_client() -> JiraClient:
    return JiraClient()
