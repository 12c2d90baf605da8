from aws_cdk import Duration

from .errors import ConstructError, Errors, UnscopedValidationError, ValidationError
from .stack_base import StackBase
