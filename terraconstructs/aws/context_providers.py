"""
Synth-time lookups against the AWS APIs.

Results are read from construct context first, so CI pipelines can
pre-seed them (``App(context={...})``) and synthesize without AWS
credentials. Otherwise the value is fetched with boto3 and cached on the
provider for the rest of the synthesis.
"""
import logging
from typing import Dict, List, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from constructs import IConstruct

from ..errors import ValidationError
from . import cx_api

logger = logging.getLogger(__name__)


def availability_zones_context_key(region: str) -> str:
    return f"{cx_api.AVAILABILITY_ZONES_CONTEXT_PREFIX}:region={region}"


class AvailabilityZoneProvider:
    """Looks up the available availability zone names of a region."""

    def __init__(self, session: Optional[boto3.session.Session] = None) -> None:
        self._session = session
        self._cache: Dict[str, List[str]] = {}

    def get_value(self, scope: IConstruct, region: str) -> List[str]:
        key = availability_zones_context_key(region)

        from_context = scope.node.try_get_context(key)
        if from_context is not None:
            if not isinstance(from_context, list):
                raise ValidationError(
                    f"Context value '{key}' should be a list of availability zone names, got: {from_context!r}",
                    scope,
                )
            return list(from_context)

        if region not in self._cache:
            self._cache[region] = self._describe(scope, region)
        return self._cache[region]

    def _describe(self, scope: IConstruct, region: str) -> List[str]:
        logger.info("Looking up availability zones for region %s", region)
        session = self._session or boto3.session.Session()
        try:
            ec2 = session.client("ec2", region_name=region)
            response = ec2.describe_availability_zones()
        except (ClientError, BotoCoreError) as e:
            raise ValidationError(
                f"Unable to look up availability zones for region {region}: {e}", scope
            ) from e

        zones = sorted(
            zone["ZoneName"]
            for zone in response.get("AvailabilityZones", [])
            if zone.get("State", "available") == "available"
            and zone.get("ZoneType", "availability-zone") == "availability-zone"
        )
        logger.debug("Found availability zones %s in %s", zones, region)
        return zones
