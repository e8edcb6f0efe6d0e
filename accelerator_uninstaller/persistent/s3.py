"""S3 bucket purge: every object version and delete marker, then the bucket."""

from __future__ import annotations
from typing import Any

from botocore.exceptions import ClientError

from ..utils import chunked, get_error_code, get_logger

logger = get_logger()

# delete_objects accepts at most 1000 keys per request
DELETE_BATCH_SIZE = 1000
MAX_PURGE_PASSES = 10


def _version_records(page: dict[str, Any]) -> list[dict[str, str]]:
    entries = page.get("Versions", []) + page.get("DeleteMarkers", [])
    return [{"Key": entry["Key"], "VersionId": entry["VersionId"]} for entry in entries]


def _delete_records(s3, bucket_name: str, records: list[dict[str, str]]) -> int:
    """Delete records in batches; returns how many failed."""
    failed = 0
    for batch in chunked(records, DELETE_BATCH_SIZE):
        response = s3.delete_objects(
            Bucket=bucket_name, Delete={"Objects": batch, "Quiet": True}
        )
        errors = response.get("Errors", [])
        for error in errors:
            logger.warning(
                "Could not delete object version",
                extra={
                    "bucket": bucket_name,
                    "key": error.get("Key"),
                    "version_id": error.get("VersionId"),
                    "error_code": error.get("Code"),
                },
            )
        failed += len(errors)
    return failed


def _purge_pass(s3, bucket_name: str) -> tuple[int, int]:
    """One full listing of the bucket; returns (found, failed)."""
    found = 0
    failed = 0
    markers: dict[str, str] = {}
    while True:
        page = s3.list_object_versions(Bucket=bucket_name, **markers)
        records = _version_records(page)
        if records:
            found += len(records)
            failed += _delete_records(s3, bucket_name, records)
        if not page.get("IsTruncated"):
            return found, failed
        markers = {"KeyMarker": page["NextKeyMarker"]}
        if page.get("NextVersionIdMarker"):
            markers["VersionIdMarker"] = page["NextVersionIdMarker"]


def purge_bucket(s3, bucket_name: str, stack_name: str = "") -> bool:
    """Empty and delete a bucket.

    The bucket is deleted only after a complete listing comes back empty.
    A missing bucket counts as already clean. Returns False when objects
    could not be removed and the bucket was left in place.
    """
    context = {"bucket": bucket_name, "stack_name": stack_name}
    try:
        for _ in range(MAX_PURGE_PASSES):
            found, failed = _purge_pass(s3, bucket_name)
            if found == 0:
                break
            logger.info(
                f"Deleted {found - failed} object version(s) from {bucket_name}",
                extra=context,
            )
        else:
            logger.error(
                f"Bucket {bucket_name} still has objects after {MAX_PURGE_PASSES} passes, "
                f"leaving it in place",
                extra=context,
            )
            return False

        logger.info(f"Deleting empty bucket {bucket_name}", extra=context)
        s3.delete_bucket(Bucket=bucket_name)
        logger.info(f"Deleted bucket {bucket_name}", extra=context)
        return True

    except ClientError as e:
        if get_error_code(e) == "NoSuchBucket":
            logger.info(f"Bucket {bucket_name} does not exist", extra=context)
            return True
        raise
