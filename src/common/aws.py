from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, Optional
from uuid import uuid4

import boto3
from botocore import UNSIGNED
from botocore.config import Config
from botocore.exceptions import ClientError
from botocore.utils import ArnParser


# Region used for the bucket-region lookup itself when none is configured
DEFAULT_LOOKUP_REGION = "us-east-1"

BUCKET_REGION_HEADER = "x-amz-bucket-region"


class BucketRegionNotFound(RuntimeError):
    """The bucket-region lookup returned no region header."""


@dataclass(frozen=True)
class TemporaryCredentials:
    access_key_id: str
    secret_access_key: str
    session_token: str
    expiration: Optional[datetime] = None


def parse_role_arn(role_arn: str) -> Dict[str, str]:
    """Split a role ARN into its sections; raises ValueError when malformed."""
    if not role_arn.startswith("arn:"):
        raise ValueError(f"arn: invalid prefix in {role_arn!r}")
    try:
        parts = ArnParser().parse_arn(role_arn)
    except ValueError as ex:  # botocore InvalidArnException
        raise ValueError(f"arn: not enough sections in {role_arn!r}") from ex
    if not parts.get("partition") or not parts.get("service") or not parts.get("resource"):
        raise ValueError(f"arn: missing partition, service or resource in {role_arn!r}")
    return parts


class AwsSessionProvider:
    """
    Builds the AWS clients a remote backend needs.

    All ambient discovery (env vars, shared config/credential files, profiles)
    happens inside boto3 sessions created by `session_factory`. Tests substitute
    a fake object exposing the same three methods.
    """

    def __init__(self, *, session_factory: Callable[..., Any] = boto3.session.Session) -> None:
        self._session_factory = session_factory

    def bucket_region(self, bucket: str, lookup_region: str = DEFAULT_LOOKUP_REGION) -> str:
        """
        Return the region that hosts `bucket`.

        S3 reports the region in a response header on HEAD, including on the
        301/403 responses returned for buckets outside `lookup_region`.
        """
        # Unsigned, so discovery works without ambient credentials
        s3 = self._session_factory(region_name=lookup_region).client("s3", config=Config(signature_version=UNSIGNED))
        try:
            resp = s3.head_bucket(Bucket=bucket)
            headers = resp.get("ResponseMetadata", {}).get("HTTPHeaders", {})
        except ClientError as e:
            headers = e.response.get("ResponseMetadata", {}).get("HTTPHeaders", {})
            if BUCKET_REGION_HEADER not in headers:
                raise
        region = headers.get(BUCKET_REGION_HEADER)
        if not region:
            raise BucketRegionNotFound(f"no region reported for bucket {bucket!r}")
        return str(region)

    def assume_role(self, role_arn: str, region: str) -> TemporaryCredentials:
        sts = self._session_factory(region_name=region).client("sts")
        resp = sts.assume_role(RoleArn=role_arn, RoleSessionName=f"tfstate-{uuid4().hex[:16]}")
        creds = resp["Credentials"]
        return TemporaryCredentials(
            access_key_id=creds["AccessKeyId"],
            secret_access_key=creds["SecretAccessKey"],
            session_token=creds["SessionToken"],
            expiration=creds.get("Expiration"),
        )

    def s3_client(self, region: str, credentials: Optional[TemporaryCredentials] = None) -> Any:
        if credentials is None:
            return self._session_factory(region_name=region).client("s3")
        session = self._session_factory(
            region_name=region,
            aws_access_key_id=credentials.access_key_id,
            aws_secret_access_key=credentials.secret_access_key,
            aws_session_token=credentials.session_token,
        )
        return session.client("s3")


__all__ = [
    "AwsSessionProvider",
    "BucketRegionNotFound",
    "DEFAULT_LOOKUP_REGION",
    "TemporaryCredentials",
    "parse_role_arn",
]
