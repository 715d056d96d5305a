"""Factory for creating configured request lifecycle coordinators.

This module wires the coordinator to its collaborators. Stores and the
dispatcher can be supplied by the caller (tests supply recording or mock
implementations); anything not supplied is built from configuration.
"""

import logging
from datetime import datetime
from typing import Callable, Optional

from ...domain.requests.coordinator import RequestLifecycleCoordinator
from ...domain.requests.interfaces import (
    BundleCodec,
    Dispatcher,
    RequestStore,
    ResponseStore,
)
from ..config.loader import ConfigLoader
from ..dispatch.http_dispatcher import HttpEhrDispatcher
from ..persistence.memory import InMemoryRequestStore, InMemoryResponseStore
from .codec_factory import BundleCodecFactory

logger = logging.getLogger(__name__)


class CoordinatorFactory:
    """Factory for creating configured coordinator instances."""

    @staticmethod
    def create_from_config(
        config_loader: ConfigLoader,
        request_store: Optional[RequestStore] = None,
        response_store: Optional[ResponseStore] = None,
        dispatcher: Optional[Dispatcher] = None,
        bundle_codec: Optional[BundleCodec] = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> RequestLifecycleCoordinator:
        """Create a coordinator with collaborators built from configuration.

        Parameters
        ----------
        config_loader : ConfigLoader
            Configuration loader instance with access to config data
        request_store : Optional[RequestStore], default=None
            Store to use; an InMemoryRequestStore if None
        response_store : Optional[ResponseStore], default=None
            Store to use; an InMemoryResponseStore if None
        dispatcher : Optional[Dispatcher], default=None
            Dispatcher to use; an HttpEhrDispatcher built from the
            ehr_middleware section if None
        bundle_codec : Optional[BundleCodec], default=None
            Codec to use; built by BundleCodecFactory if None
        clock : Callable[[], datetime], default=datetime.now
            Time source for the coordinator

        Returns
        -------
        RequestLifecycleCoordinator
            A new coordinator; this factory never caches instances

        Raises
        ------
        ValueError
            If the coordinator section, or the ehr_middleware section when
            no dispatcher is supplied, is missing or invalid
        """
        coord_config = config_loader.get_coordinator_config()

        if request_store is None:
            request_store = InMemoryRequestStore()
        if response_store is None:
            response_store = InMemoryResponseStore()
        if dispatcher is None:
            dispatcher = HttpEhrDispatcher(
                config_loader.get_ehr_middleware_config()
            )
        if bundle_codec is None:
            bundle_codec = BundleCodecFactory.create_from_config(config_loader)

        logger.info(
            f"Creating request coordinator with config: {coord_config}"
        )

        return RequestLifecycleCoordinator(
            request_store=request_store,
            response_store=response_store,
            bundle_codec=bundle_codec,
            dispatcher=dispatcher,
            config=coord_config,
            clock=clock,
        )
