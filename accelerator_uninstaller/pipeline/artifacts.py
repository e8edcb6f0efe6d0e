"""Pipeline-side leftovers: the configuration repository and CodeBuild projects."""

from __future__ import annotations

import boto3
from botocore.exceptions import ClientError

from ..models import ConfigSourceRepo
from ..utils import chunked, create_client, get_error_code, get_logger

logger = get_logger()

# batch_delete_builds accepts at most 100 ids per request
BUILD_BATCH_SIZE = 100


def delete_config_repository(
    session: boto3.Session, repo: ConfigSourceRepo | None, region: str | None = None
) -> bool:
    """Delete the CodeCommit configuration repository.

    Only CodeCommit sources are owned by the accelerator; any other provider
    is left alone. Returns True when a repository was removed or was already gone.
    """
    if repo is None or repo.provider != "CodeCommit":
        logger.info("Configuration source is not a CodeCommit repository, keeping it")
        return False

    context = {"repository_name": repo.repository_name, "region": region}
    codecommit = create_client(session, "codecommit", region)
    logger.info(f"Deleting config repository {repo.repository_name}", extra=context)
    try:
        response = codecommit.delete_repository(repositoryName=repo.repository_name)
    except ClientError as e:
        if get_error_code(e) == "RepositoryDoesNotExistException":
            logger.info(f"Config repository {repo.repository_name} does not exist", extra=context)
            return True
        raise

    # delete_repository reports a missing repository with an empty id
    if not response.get("repositoryId"):
        logger.info(f"Config repository {repo.repository_name} does not exist", extra=context)
    else:
        logger.info(f"Deleted config repository {repo.repository_name}", extra=context)
    return True


def delete_build_history(codebuild, project_name: str) -> int:
    build_ids = []
    for page in codebuild.get_paginator("list_builds_for_project").paginate(
        projectName=project_name
    ):
        build_ids.extend(page.get("ids", []))

    for batch in chunked(build_ids, BUILD_BATCH_SIZE):
        response = codebuild.batch_delete_builds(ids=batch)
        for failure in response.get("buildsNotDeleted", []):
            logger.warning(
                "Could not delete build",
                extra={
                    "project_name": project_name,
                    "build_id": failure.get("id"),
                    "status_code": failure.get("statusCode"),
                },
            )
    return len(build_ids)


def delete_codebuild_project(
    session: boto3.Session, project_name: str, region: str | None = None
) -> bool:
    """Delete a CodeBuild project together with its build history."""
    context = {"project_name": project_name, "region": region}
    codebuild = create_client(session, "codebuild", region)
    try:
        logger.info(f"Deleting build history of CodeBuild project {project_name}", extra=context)
        deleted = delete_build_history(codebuild, project_name)
        logger.info(f"Deleted {deleted} build(s) of {project_name}", extra=context)

        logger.info(f"Deleting CodeBuild project {project_name}", extra=context)
        codebuild.delete_project(name=project_name)
        logger.info(f"Deleted CodeBuild project {project_name}", extra=context)
        return True
    except ClientError as e:
        if get_error_code(e) == "ResourceNotFoundException":
            logger.info(f"CodeBuild project {project_name} does not exist", extra=context)
            return True
        raise


def delete_codebuild_projects(
    session: boto3.Session, project_names: tuple[str, ...], region: str | None = None
) -> list[str]:
    deleted = []
    for project_name in project_names:
        if delete_codebuild_project(session, project_name, region):
            deleted.append(project_name)
    return deleted
