from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from adaptive_tutor.config import Settings, load_settings
from adaptive_tutor.generation.llm_client import CompletionClient, OpenAICompletionClient
from adaptive_tutor.services.tutor_service import TutorService
from adaptive_tutor.utils.logging import configure_logging

logger = logging.getLogger(__name__)


class TutorSystem:
    """
    Main facade wiring configuration, logging and the tutor service together.

    The system is the single place where engine state is created: it builds one
    `TutorService` (which owns the response cache, call throttler, content tracker and
    progress engine) around a completion client, so every caller in the process shares
    the same cache and the same call spacing.

    Attributes
    ----------
    settings : Settings
        Configuration loaded from YAML, containing cache, throttle, retry and
        progress parameters.
    client : CompletionClient
        Boundary to the hosted completion service (OpenAI by default).
    service : TutorService
        API used by the UI and the CLI.
    """

    def __init__(
        self,
        settings: Settings,
        api_key: Optional[str] = None,
        client: Optional[CompletionClient] = None,
    ):
        """
        Initialize the system with all required components.

        Parameters
        ----------
        settings : Settings
            Configuration object, typically loaded via `load_settings()`.
        api_key : Optional[str], default=None
            OpenAI API key. If None, read from the OPENAI_API_KEY environment variable.
        client : Optional[CompletionClient], default=None
            Pre-built completion client; skips OpenAI client construction.

        Raises
        ------
        RuntimeError
            If no client is given and no API key is available.
        """
        self.settings = settings
        configure_logging(settings.logging.level, settings.logging.use_json)
        self.client = client or OpenAICompletionClient(settings.model, api_key=api_key)
        self.service = TutorService(self.client, settings)
        logger.info("Adaptive tutor engine ready (model: %s)", settings.model.name)

    @classmethod
    def from_config(
        cls,
        config_path: str | Path | None = None,
        api_key: Optional[str] = None,
        client: Optional[CompletionClient] = None,
    ) -> "TutorSystem":
        """
        Construct a TutorSystem from a configuration file.

        Parameters
        ----------
        config_path : str | Path | None, default=None
            Path to a YAML configuration file. If None, config/default.yaml is used
            when present, otherwise built-in defaults.
        api_key : Optional[str], default=None
            OpenAI API key.
        client : Optional[CompletionClient], default=None
            Pre-built completion client.

        Raises
        ------
        FileNotFoundError
            If config_path is specified but doesn't exist.
        ValueError
            If the configuration fails validation.
        """
        settings = load_settings(config_path)
        return cls(settings, api_key=api_key, client=client)
