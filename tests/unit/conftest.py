import json
import os

import pytest
from cdktf import DefaultTokenResolver, StringConcat, Testing, Tokenization

from terraconstructs.aws import AwsStack


@pytest.fixture
def aws_credentials():
    """Mocked AWS Credentials for moto."""
    os.environ["AWS_ACCESS_KEY_ID"] = "testing"
    os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"
    os.environ["AWS_SECURITY_TOKEN"] = "testing"
    os.environ["AWS_SESSION_TOKEN"] = "testing"
    os.environ["AWS_DEFAULT_REGION"] = "us-east-1"


@pytest.fixture
def app():
    return Testing.app()


@pytest.fixture
def stack(app):
    return AwsStack(app)


@pytest.fixture
def synth():
    """Synthesizes a stack into its Terraform JSON (as a dict)."""

    def _synth(stack):
        # lazily rendered principals add data sources while resolving
        stack.prepare_stack()
        return json.loads(Testing.synth(stack))

    return _synth


@pytest.fixture
def resources():
    """All blocks of one resource type in a synthesized template."""

    def _resources(template, resource_type, kind="resource"):
        return list(template.get(kind, {}).get(resource_type, {}).values())

    return _resources


@pytest.fixture
def resolve(stack):
    """Resolves the tokens in a value to the Terraform expressions they render to."""

    def _resolve(obj):
        return Tokenization.resolve(
            obj, scope=stack, preparing=False, resolver=DefaultTokenResolver(StringConcat())
        )

    return _resolve
