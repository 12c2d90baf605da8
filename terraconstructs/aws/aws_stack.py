"""
A Terraform stack constrained to a single AWS account and region.

The stack owns the default AWS provider and the handful of data sources
(region, caller identity, partition, availability zones, service
principals) that constructs need to build ARNs and policies. Each of them
is only added to the configuration the first time it is used.
"""
import re
from typing import Any, Dict, List, Mapping, Optional

from aws_cdk.region_info import Fact, RegionInfo
from cdktf import Fn, ResourceTerraformIterator, TerraformIterator, Token
from cdktf_cdktf_provider_aws.data_aws_availability_zones import DataAwsAvailabilityZones
from cdktf_cdktf_provider_aws.data_aws_caller_identity import DataAwsCallerIdentity
from cdktf_cdktf_provider_aws.data_aws_partition import DataAwsPartition
from cdktf_cdktf_provider_aws.data_aws_region import DataAwsRegion
from cdktf_cdktf_provider_aws.data_aws_service_principal import DataAwsServicePrincipal
from cdktf_cdktf_provider_aws.provider import AwsProvider
from constructs import Construct, IConstruct

from ..errors import ValidationError
from ..private.terraform_dependables_aspect import skip_dependency_propagation
from ..stack_base import StackBase
from . import cx_api
from .arn import Arn, ArnComponents, ArnFormat
from .context_providers import AvailabilityZoneProvider
from .region_lookup import deploy_time_lookup
from .util import to_terraform_identifier

AWS_STACK_SYMBOL = "_tc_is_aws_stack"
DEFAULT_REGION_KEY = "default_region"

SERVICE_PRINCIPAL_PATTERN = re.compile(
    r"^([^.]+)(?:(?:\.amazonaws\.com(?:\.cn)?)|(?:\.c2s\.ic\.gov)|(?:\.sc2s\.sgov\.gov))?$"
)


class AwsStack(StackBase):
    """A Terraform stack constrained to a single AWS Account/Region."""

    def __init__(
        self,
        scope: Optional[Construct] = None,
        id: Optional[str] = None,
        *,
        provider_config: Optional[Mapping[str, Any]] = None,
        availability_zone_provider: Optional[AvailabilityZoneProvider] = None,
        **kwargs,
    ) -> None:
        super().__init__(scope, id, **kwargs)
        self._provider_config = dict(provider_config or {})
        self._az_provider = availability_zone_provider or AvailabilityZoneProvider()

        self._aws_provider: Optional[AwsProvider] = None
        self._regional_providers: Dict[str, AwsProvider] = {}
        self._data_region: Optional[DataAwsRegion] = None
        self._data_caller_identity: Optional[DataAwsCallerIdentity] = None
        self._data_partition: Optional[DataAwsPartition] = None
        self._data_availability_zones: Optional[DataAwsAvailabilityZones] = None
        self._service_principals: Dict[str, Dict[str, DataAwsServicePrincipal]] = {}

        # Cache the tokens: every attribute access on a data source creates
        # a new token string, and callers compare them.
        self._region_token: Optional[str] = None
        self._account_token: Optional[str] = None
        self._partition_token: Optional[str] = None
        self._url_suffix_token: Optional[str] = None

        setattr(self, AWS_STACK_SYMBOL, True)

    @staticmethod
    def is_aws_stack(x: Any) -> bool:
        return getattr(x, AWS_STACK_SYMBOL, False) is True

    @staticmethod
    def of_aws_construct(construct: IConstruct) -> "AwsStack":
        """
        Looks up the first stack scope in which ``construct`` is defined.

        Fails if there is no stack up the tree or the stack is not an AwsStack.
        """
        for scope in reversed(construct.node.scopes):
            if AwsStack.is_aws_stack(scope):
                return scope
        raise ValidationError(
            f"Resource '{type(construct).__name__}' at '{construct.node.path}' should be created "
            "in the scope of an AwsStack, but no AwsStack found",
            construct,
        )

    # =================================================================
    # ===================== PROVIDER & LOOKUPS ========================
    # =================================================================

    @property
    def provider(self) -> AwsProvider:
        if self._aws_provider is None:
            self._aws_provider = AwsProvider(self, "defaultAwsProvider", **self._provider_config)
        return self._aws_provider

    def _regional_provider(self, region: str) -> AwsProvider:
        if region not in self._regional_providers:
            alias = to_terraform_identifier(region)
            self._regional_providers[region] = AwsProvider(
                self, f"aws_{alias}", region=region, alias=alias
            )
        return self._regional_providers[region]

    @property
    def region(self) -> str:
        """The AWS Region of the stack."""
        if self._region_token is None:
            configured = self.provider.region
            if configured:
                self._region_token = configured
            else:
                self._data_region = DataAwsRegion(self, "Region", provider=self.provider)
                skip_dependency_propagation(self._data_region)
                self._region_token = self._data_region.name
        return self._region_token

    @property
    def account(self) -> str:
        """The AWS Account of the stack."""
        if self._account_token is None:
            if self._data_caller_identity is None:
                self._data_caller_identity = DataAwsCallerIdentity(
                    self, "CallerIdentity", provider=self.provider
                )
                skip_dependency_propagation(self._data_caller_identity)
            self._account_token = self._data_caller_identity.account_id
        return self._account_token

    def _partition_data(self) -> DataAwsPartition:
        if self._data_partition is None:
            self._data_partition = DataAwsPartition(self, "Partitition", provider=self.provider)
            skip_dependency_propagation(self._data_partition)
        return self._data_partition

    @property
    def partition(self) -> str:
        """The AWS Partition of the stack."""
        if self._partition_token is None:
            self._partition_token = self._partition_data().partition
        return self._partition_token

    @property
    def url_suffix(self) -> str:
        """
        Base DNS domain name for the current partition (e.g. amazonaws.com in
        AWS Commercial, amazonaws.com.cn in AWS China).
        """
        if self._url_suffix_token is None:
            self._url_suffix_token = self._partition_data().dns_suffix
        return self._url_suffix_token

    def _availability_zones_data(self) -> DataAwsAvailabilityZones:
        if self._data_availability_zones is None:
            self._data_availability_zones = DataAwsAvailabilityZones(
                self, "AvailabilityZones", provider=self.provider
            )
            skip_dependency_propagation(self._data_availability_zones)
        return self._data_availability_zones

    def service_principal_name(self, service: str, region: Optional[str] = None) -> str:
        """
        Return the service principal name based on the region it's used in.

        All service principal names are standardized to
        ``<servicename>.amazonaws.com`` these days; full names in the legacy
        formats (``s3.amazonaws.com.cn``, ``s3.c2s.ic.gov``, ...) are reduced
        to the bare service name the ``aws_service_principal`` data source
        expects.
        """
        region = region or DEFAULT_REGION_KEY
        if Token.is_unresolved(region):
            raise ValidationError(
                "Cannot determine the service principal ID because the region is a token. "
                "You must specify the region explicitly.",
                self,
            )

        match = SERVICE_PRINCIPAL_PATTERN.match(service)
        service_name = match.group(1) if match else service

        by_service = self._service_principals.setdefault(region, {})
        if service_name not in by_service:
            svcp = DataAwsServicePrincipal(
                self,
                f"aws_svcp_{to_terraform_identifier(region)}_{service_name}",
                service_name=service_name,
                provider=self.provider if region == DEFAULT_REGION_KEY else self._regional_provider(region),
            )
            skip_dependency_propagation(svcp)
            by_service[service_name] = svcp
        return by_service[service_name].name

    # =================================================================
    # ============================ ARNS ===============================
    # =================================================================

    def format_arn(self, components: ArnComponents) -> str:
        """
        Creates an ARN from components, defaulting partition, region and
        account to those of this stack.
        """
        return Arn.format(components, self)

    def parse_arn(self, arn: str, sep_if_token: str = "/", has_name: bool = True) -> ArnComponents:
        """Deprecated: use ``split_arn``."""
        return Arn.parse(arn, sep_if_token, has_name)

    def split_arn(self, arn: str, arn_format: ArnFormat) -> ArnComponents:
        return Arn.split(arn, arn_format)

    # =================================================================
    # ===================== AVAILABILITY ZONES ========================
    # =================================================================

    @property
    def availability_zone_iterator(self) -> ResourceTerraformIterator:
        """Iterator over all AZs available to the stack's provider."""
        return TerraformIterator.from_data_sources(self._availability_zones_data())

    def availability_zones(self, max_count: int = 2) -> List[str]:
        """
        Returns ``max_count`` tokens referencing the AZ names available in
        the stack's AWS environment.
        """
        azs = self._availability_zones_data()
        return [Token.as_string(Fn.element(azs.names, i)) for i in range(max_count)]

    def lookup_availability_zones(self, max_count: int = 2) -> List[str]:
        """
        Returns up to ``max_count`` concrete AZ names, looked up at synth time.

        Requires a concrete region on the provider configuration.
        """
        if Token.is_unresolved(self.region):
            raise ValidationError(
                "Cannot look up availability zones when the stack region is a token. "
                "Configure 'region' in provider_config or use availability_zones().",
                self,
            )
        return self._az_provider.get_value(self, self.region)[:max_count]

    # =================================================================
    # ======================= REGIONAL FACTS ==========================
    # =================================================================

    def regional_fact(self, fact_name: str, default_value: Optional[str] = None) -> str:
        """
        Look up a fact value for the given fact for the region of this stack.

        Returns a definite value when the region is concrete. Otherwise a
        lookup map is added to the stack and resolved at deployment time;
        the ``TARGET_PARTITIONS`` context key limits the map to the listed
        partitions.
        """
        if not Token.is_unresolved(self.region):
            ret = Fact.find(self.region, fact_name) or default_value
            if ret is None:
                raise ValidationError(
                    f"region-info: don't know {fact_name} for region {self.region}. "
                    "Use 'Fact.register' to provide this value.",
                    self,
                )
            return ret

        partitions = self.node.try_get_context(cx_api.TARGET_PARTITIONS)
        if partitions is not None and partitions != "undefined" and not isinstance(partitions, list):
            raise ValidationError(
                f"Context value '{cx_api.TARGET_PARTITIONS}' should be a list of strings, got: {partitions!r}",
                self,
            )

        if partitions is not None and partitions != "undefined":
            lookup_map = RegionInfo.limited_region_map(fact_name, partitions)
        else:
            lookup_map = RegionInfo.region_map(fact_name)

        return deploy_time_lookup(self, fact_name, dict(lookup_map), default_value)
