"""Expose constructed client wrappers."""

from .aws_common import AWSServiceError
from .cognito import CognitoIdentityPoolClient, CognitoUserPoolClient
from .dynamodb import DynamoDBClient
from .s3 import S3Client

__all__ = [
    "AWSServiceError",
    "CognitoIdentityPoolClient",
    "CognitoUserPoolClient",
    "DynamoDBClient",
    "S3Client",
]
