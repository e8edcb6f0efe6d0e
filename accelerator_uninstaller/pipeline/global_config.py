"""Read the regions the accelerator was deployed to from global-config.yaml."""

from __future__ import annotations
import io
import zipfile
from dataclasses import dataclass

import boto3
import yaml
from botocore.exceptions import ClientError

from ..exceptions import GlobalConfigError
from ..models import ConfigSourceRepo
from ..models.config import GLOBAL_CONFIG_FILE
from ..utils import create_client, get_logger

logger = get_logger()


@dataclass(frozen=True)
class GlobalConfig:
    home_region: str
    enabled_regions: tuple[str, ...]


def parse_global_config(content: str | bytes) -> GlobalConfig:
    try:
        document = yaml.safe_load(content) or {}
    except yaml.YAMLError as e:
        raise GlobalConfigError(f"Error parsing {GLOBAL_CONFIG_FILE}: {e}") from e

    home_region = document.get("homeRegion")
    if not home_region:
        raise GlobalConfigError(f"{GLOBAL_CONFIG_FILE} has no homeRegion")

    enabled_regions = list(document.get("enabledRegions") or [])
    if home_region not in enabled_regions:
        enabled_regions.insert(0, home_region)
    return GlobalConfig(home_region=home_region, enabled_regions=tuple(enabled_regions))


def _read_from_codecommit(session: boto3.Session, repo: ConfigSourceRepo, path: str) -> bytes:
    codecommit = create_client(session, "codecommit")
    kwargs = {"repositoryName": repo.repository_name, "filePath": path}
    if repo.branch:
        kwargs["commitSpecifier"] = repo.branch
    return codecommit.get_file(**kwargs)["fileContent"]


def _read_from_s3(session: boto3.Session, repo: ConfigSourceRepo, path: str) -> bytes:
    s3 = create_client(session, "s3")
    body = s3.get_object(Bucket=repo.bucket, Key=repo.object_key)["Body"].read()
    with zipfile.ZipFile(io.BytesIO(body)) as archive:
        return archive.read(path)


def load_global_config(
    session: boto3.Session, repo: ConfigSourceRepo | None, path: str = GLOBAL_CONFIG_FILE
) -> GlobalConfig:
    """Fetch and parse the global configuration from the pipeline config source."""
    if repo is None:
        raise GlobalConfigError(
            "Pipeline has no configuration source, pass --home-region explicitly"
        )
    try:
        if repo.provider == "CodeCommit":
            content = _read_from_codecommit(session, repo, path)
        elif repo.provider == "S3" and repo.bucket and repo.object_key:
            content = _read_from_s3(session, repo, path)
        else:
            raise GlobalConfigError(
                f"Unsupported configuration source provider '{repo.provider}', "
                f"pass --home-region explicitly"
            )
    except ClientError as e:
        raise GlobalConfigError(f"Unable to read {path}: {e}") from e
    except (KeyError, zipfile.BadZipFile) as e:
        raise GlobalConfigError(f"{path} not found in configuration archive: {e}") from e

    config = parse_global_config(content)
    logger.info(
        "Loaded global config",
        extra={"home_region": config.home_region, "enabled_regions": list(config.enabled_regions)},
    )
    return config
