"""Evidence clients used by test bodies to reach the server under test."""

from conformance_engine.client.base import EvidenceClient, Exchange
from conformance_engine.client.config import ClientConfig
from conformance_engine.client.http import HttpEvidenceClient

__all__ = ["ClientConfig", "EvidenceClient", "Exchange", "HttpEvidenceClient"]
