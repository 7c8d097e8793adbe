"""Output writer for finished packages, local or on S3."""

import logging
import time
from pathlib import Path

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from debpack.config import ENV_AWS_REGION, get_env_var
from debpack.errors import WriteError

logger = logging.getLogger(__name__)

S3_SCHEME = "s3://"
DEB_CONTENT_TYPE = "application/vnd.debian.binary-package"


class OutputWriter:
    """Persists package bytes to a local path or an ``s3://bucket/key`` URL."""

    def __init__(self, region: str | None = None, max_retries: int = 3):
        """Initialize the writer.

        Args:
            region: AWS region for S3 uploads. If None, reads from environment.
            max_retries: Upload attempts before giving up on S3
        """
        self.region = region or get_env_var(ENV_AWS_REGION, default="us-east-1")
        self.max_retries = max_retries
        self._s3_client = None

    @property
    def s3_client(self):
        # Created on first S3 write so local builds never touch AWS
        if self._s3_client is None:
            self._s3_client = boto3.client("s3", region_name=self.region)
        return self._s3_client

    def write(self, path: str, data: bytes) -> None:
        """Write ``data`` to ``path``.

        Raises:
            WriteError: If the package could not be persisted
        """
        if path.startswith(S3_SCHEME):
            self._upload(path, data)
        else:
            self._write_local(path, data)

    def _write_local(self, path: str, data: bytes) -> None:
        target = Path(path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as e:
            raise WriteError(f"Cannot write {path}: {e.strerror or e}") from e

        logger.info(f"Wrote {len(data)} bytes to {path}")

    def _upload(self, url: str, data: bytes) -> None:
        """Upload package bytes to S3 with retry logic."""
        bucket, _, key = url[len(S3_SCHEME):].partition("/")
        if not bucket or not key:
            raise WriteError(f"Invalid S3 location {url}: expected s3://bucket/key")

        for attempt in range(self.max_retries):
            try:
                logger.debug(f"Uploading package to {url} (attempt {attempt + 1})")
                self.s3_client.put_object(
                    Bucket=bucket,
                    Key=key,
                    Body=data,
                    ContentType=DEB_CONTENT_TYPE,
                )
                logger.info(f"Uploaded {len(data)} bytes to {url}")
                return

            except (ClientError, BotoCoreError) as e:
                logger.warning(f"Upload attempt {attempt + 1} failed for {url}: {e}")

                if attempt == self.max_retries - 1:
                    raise WriteError(f"All upload attempts failed for {url}: {e}") from e

                # Exponential backoff
                time.sleep(2**attempt)
