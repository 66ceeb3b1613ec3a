"""S3-backed versioned document store."""
import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote, unquote

import boto3
from botocore.exceptions import ClientError

from storage.document_store import (
    DocumentNotFoundError,
    DocumentStore,
    StorageError,
)

logger = logging.getLogger(__name__)


class S3DocumentStore(DocumentStore):
    """
    Document store on a versioned S3 bucket.

    Every write creates a new object version; the commit message and
    author travel with it as object metadata so the bucket history is
    the audit trail.
    """

    NOT_FOUND_CODES = ('NoSuchKey', '404', 'NotFound')
    CONTENT_TYPE = 'application/json; charset=utf-8'

    def __init__(
        self,
        bucket_name: str,
        prefix: str = '',
        region_name: Optional[str] = None,
        endpoint_url: Optional[str] = None
    ):
        """
        Initialize S3 client and bucket reference.

        Args:
            bucket_name: Name of the (versioned) S3 bucket
            prefix: Key prefix acting as the store root
            region_name: AWS region, defaults to the environment
            endpoint_url: Alternative endpoint for S3-compatible services
        """
        super().__init__()
        self.bucket_name = bucket_name
        self.prefix = prefix.strip('/')

        client_kwargs = {}
        if region_name:
            client_kwargs['region_name'] = region_name
        if endpoint_url:
            client_kwargs['endpoint_url'] = endpoint_url
        self.s3 = boto3.client('s3', **client_kwargs)

        # key -> ETag as of the last poke(), None until the first one
        self._etags: Optional[Dict[str, str]] = None
        logger.info(
            f"Initialized S3DocumentStore for bucket: {bucket_name}"
            f" (prefix: '{self.prefix}')"
        )

    def _key(self, path: str) -> str:
        path = path.lstrip('/')
        return f"{self.prefix}/{path}" if self.prefix else path

    def _is_not_found(self, error: ClientError) -> bool:
        return error.response.get('Error', {}).get('Code') in self.NOT_FOUND_CODES

    def get_text(self, path: str) -> str:
        key = self._key(path)
        try:
            response = self.s3.get_object(Bucket=self.bucket_name, Key=key)
        except ClientError as e:
            if self._is_not_found(e):
                raise DocumentNotFoundError(path) from e
            logger.error(f"Error reading {key} from S3: {e}")
            raise StorageError(f"Failed to read {path}: {e}") from e
        return response['Body'].read().decode('utf-8')

    def exists(self, path: str) -> bool:
        key = self._key(path)
        try:
            self.s3.head_object(Bucket=self.bucket_name, Key=key)
            return True
        except ClientError as e:
            if self._is_not_found(e):
                return False
            logger.error(f"Error checking {key} in S3: {e}")
            raise StorageError(f"Failed to check {path}: {e}") from e

    def list_files(self, directory: str) -> List[str]:
        parts = [part for part in (self.prefix, directory.strip('/')) if part]
        dir_prefix = '/'.join(parts) + '/' if parts else ''
        names = []
        try:
            paginator = self.s3.get_paginator('list_objects_v2')
            pages = paginator.paginate(
                Bucket=self.bucket_name,
                Prefix=dir_prefix,
                Delimiter='/'
            )
            for page in pages:
                for item in page.get('Contents', []):
                    names.append(item['Key'][len(dir_prefix):])
        except ClientError as e:
            logger.error(f"Error listing {dir_prefix} in S3: {e}")
            raise StorageError(f"Failed to list {directory}: {e}") from e
        return sorted(names)

    def set_text(
        self,
        path: str,
        text: str,
        message: Optional[str] = None,
        author: Optional[str] = None
    ) -> None:
        key = self._key(path)

        # S3 metadata must be ASCII
        metadata = {}
        if message:
            metadata['commit-message'] = quote(message)
        if author:
            metadata['author'] = quote(author)

        try:
            response = self.s3.put_object(
                Bucket=self.bucket_name,
                Key=key,
                Body=text.encode('utf-8'),
                ContentType=self.CONTENT_TYPE,
                Metadata=metadata
            )
        except ClientError as e:
            logger.error(f"Error writing {key} to S3: {e}")
            raise StorageError(f"Failed to write {path}: {e}") from e

        if self._etags is not None:
            self._etags[key] = response['ETag']
        logger.info(f"Wrote {key}" + (f": {message}" if message else ""))

    def poke(self) -> bool:
        current = self._scan_etags()
        is_pull = self._etags is not None and current != self._etags
        self._etags = current

        if is_pull:
            logger.info(f"Detected external changes in bucket {self.bucket_name}")
        self._notify(is_pull)
        return is_pull

    def _scan_etags(self) -> Dict[str, str]:
        """
        List every object under the store root with its ETag.

        Returns:
            Dictionary mapping object key to ETag
        """
        etags = {}
        kwargs = {'Bucket': self.bucket_name}
        if self.prefix:
            kwargs['Prefix'] = self.prefix + '/'

        try:
            paginator = self.s3.get_paginator('list_objects_v2')
            for page in paginator.paginate(**kwargs):
                for item in page.get('Contents', []):
                    etags[item['Key']] = item['ETag']
        except ClientError as e:
            logger.error(f"Error scanning bucket {self.bucket_name}: {e}")
            raise StorageError(f"Failed to scan store: {e}") from e
        return etags

    def list_versions(self, path: str) -> List[Dict[str, Any]]:
        key = self._key(path)
        versions = []
        try:
            paginator = self.s3.get_paginator('list_object_versions')
            for page in paginator.paginate(Bucket=self.bucket_name, Prefix=key):
                for version in page.get('Versions', []):
                    if version['Key'] != key:
                        continue
                    head = self.s3.head_object(
                        Bucket=self.bucket_name,
                        Key=key,
                        VersionId=version['VersionId']
                    )
                    metadata = head.get('Metadata', {})
                    versions.append({
                        'version_id': version['VersionId'],
                        'last_modified': version['LastModified'],
                        'is_latest': version.get('IsLatest', False),
                        'message': unquote(metadata.get('commit-message', '')),
                        'author': unquote(metadata.get('author', '')),
                    })
        except ClientError as e:
            logger.error(f"Error listing versions of {key}: {e}")
            raise StorageError(f"Failed to list versions of {path}: {e}") from e
        return versions
