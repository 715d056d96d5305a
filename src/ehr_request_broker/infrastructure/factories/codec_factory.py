"""Factory for creating configured bundle codec instances.

This module provides factory methods to create JsonBundleCodec instances
with provenance annotation enabled or disabled from configuration.
"""

import logging

from ...domain.bundles.codec import JsonBundleCodec
from ...domain.bundles.provenance import ProvenanceBuilder
from ..config.loader import ConfigLoader

logger = logging.getLogger(__name__)


class BundleCodecFactory:
    """Factory for creating configured bundle codec instances."""

    @staticmethod
    def create_from_config(config_loader: ConfigLoader) -> JsonBundleCodec:
        """Create a bundle codec from the provenance configuration.

        Parameters
        ----------
        config_loader : ConfigLoader
            Configuration loader instance with access to config data

        Returns
        -------
        JsonBundleCodec
            Codec annotating final results with provenance when enabled

        Examples
        --------
        >>> codec = BundleCodecFactory.create_from_config(ConfigLoader())
        >>> bundle = codec.parse_and_validate(raw_json)
        """
        provenance_config = config_loader.get_provenance_config()

        if not provenance_config.enabled:
            logger.info("Provenance annotation disabled")
            return JsonBundleCodec()

        logger.info(
            f"Provenance annotation enabled for "
            f"{provenance_config.organization_name}"
        )
        return JsonBundleCodec(
            ProvenanceBuilder(
                organization_name=provenance_config.organization_name,
                organization_id=provenance_config.organization_id,
            )
        )
