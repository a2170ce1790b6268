from __future__ import annotations

import io
import logging
from dataclasses import dataclass
from typing import Any, Optional

from botocore.exceptions import BotoCoreError, ClientError

from common.aws import (
    DEFAULT_LOOKUP_REGION,
    AwsSessionProvider,
    BucketRegionNotFound,
    TemporaryCredentials,
    parse_role_arn,
)
from common.backend_config import BackendConfigBlock, S3BackendConfig, decode_config
from common.errors import BackendError

from .models import BackendKind, BackendResult, StateDocument
from .parser import parse_and_validate

logger = logging.getLogger(__name__)


class RegionResolutionError(BackendError):
    """The bucket's region could not be discovered."""

    def __init__(self, bucket: str, reason: str = "") -> None:
        msg = f"cannot resolve region for bucket {bucket}"
        super().__init__(f"{msg}: {reason}" if reason else msg)
        self.bucket = bucket


class InvalidRoleArnError(BackendError):
    """`role_arn` is not a well-formed ARN."""

    def __init__(self, role_arn: str, reason: str = "") -> None:
        super().__init__(f"invalid role_arn {role_arn!r}" + (f": {reason}" if reason else ""))
        self.role_arn = role_arn


class RoleAssumptionError(BackendError):
    """STS refused or failed to issue credentials for `role_arn`."""

    def __init__(self, role_arn: str, reason: str = "") -> None:
        super().__init__(f"cannot assume role {role_arn}" + (f": {reason}" if reason else ""))
        self.role_arn = role_arn


class ObjectFetchError(BackendError):
    """The state object could not be fetched (missing, denied, or transport failure)."""

    def __init__(self, bucket: str, key: str, reason: str = "") -> None:
        msg = f"failed to fetch s3://{bucket}/{key}"
        super().__init__(f"{msg}: {reason}" if reason else msg)
        self.bucket = bucket
        self.key = key


@dataclass
class S3ObjectRef:
    bucket: str
    key: str


class S3StateStore:
    """
    Reads a Terraform state object from S3.

    Usage
    - Inject an S3 client already bound to the bucket's region and credentials.
    - `read()` fetches the object and returns the validated `StateDocument`.
      Every call performs a fresh GetObject; nothing is cached.
    """

    def __init__(self, *, s3: Any, bucket: str, key: str) -> None:
        self._s3 = s3
        self._obj = S3ObjectRef(bucket=bucket, key=key)

    def read(self) -> StateDocument:
        """Fetch and validate the state object.

        Raises:
        - ObjectFetchError for NoSuchKey, AccessDenied and transport failures.
        - StateFormatError / StateVersionError from the parser, unchanged.
        """
        try:
            resp = self._s3.get_object(Bucket=self._obj.bucket, Key=self._obj.key)
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code", "")
            raise ObjectFetchError(self._obj.bucket, self._obj.key, code or str(e)) from e
        except BotoCoreError as e:
            raise ObjectFetchError(self._obj.bucket, self._obj.key, str(e)) from e

        body = resp["Body"]
        try:
            data = body.read()
        except BotoCoreError as e:
            raise ObjectFetchError(self._obj.bucket, self._obj.key, str(e)) from e
        finally:
            body.close()
        return parse_and_validate(io.BytesIO(data))


def new_s3_backend(block: BackendConfigBlock, *, provider: Optional[AwsSessionProvider] = None) -> BackendResult:
    """Resolve an `s3` backend declaration.

    Order: decode config, check role_arn, discover the region when unset,
    assume the role when set, then fetch and validate the object.
    """
    cfg = decode_config(block, S3BackendConfig)
    aws = provider or AwsSessionProvider()

    # Reject a malformed ARN before any network traffic
    if cfg.role_arn:
        try:
            parse_role_arn(cfg.role_arn)
        except ValueError as ex:
            raise InvalidRoleArnError(cfg.role_arn, str(ex)) from ex

    region = cfg.region
    if not region:
        try:
            region = aws.bucket_region(cfg.bucket, DEFAULT_LOOKUP_REGION)
        except (ClientError, BotoCoreError, BucketRegionNotFound) as ex:
            raise RegionResolutionError(cfg.bucket, str(ex)) from ex
        logger.debug("Discovered region %s for bucket %s", region, cfg.bucket)

    credentials: Optional[TemporaryCredentials] = None
    if cfg.role_arn:
        try:
            credentials = aws.assume_role(cfg.role_arn, region)
        except (ClientError, BotoCoreError) as ex:
            raise RoleAssumptionError(cfg.role_arn, str(ex)) from ex
        logger.debug("Assumed role %s for backend %s", cfg.role_arn, block.name)

    try:
        s3 = aws.s3_client(region, credentials)
    except BotoCoreError as ex:
        raise ObjectFetchError(cfg.bucket, cfg.key, str(ex)) from ex

    logger.debug("Fetching s3://%s/%s (region %s) for backend %s", cfg.bucket, cfg.key, region, block.name)
    document = S3StateStore(s3=s3, bucket=cfg.bucket, key=cfg.key).read()
    return BackendResult(kind=BackendKind.S3, name=block.name, document=document)
