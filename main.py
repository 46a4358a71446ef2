"""
main.py
-------
Smoke-run for the tracker store.

Responsibilities:
    - Open the connection pool from environment configuration.
    - Create the raw/analytics schemas if missing.
    - Exercise every repository against the live database and log results.
"""

import sys
from datetime import datetime, timezone

from config import DBConfig
from db.connection import Database
from db.errors import NotFoundError, RepositoryError
from db.init_db import create_tables
from models.issue import Issue
from models.project import Project
from models.status_change import StatusChange
from repositories.analytics_repo import AnalyticsRepository
from repositories.author_repo import AuthorRepository
from repositories.issue_repo import IssueRepository
from repositories.project_repo import ProjectRepository
from repositories.status_change_repo import StatusChangeRepository
from utils.logger import get_logger

logger = get_logger(__name__)

DEMO_PROJECT_ID = 9999
DEMO_AUTHOR_ID = 8888
DEMO_ISSUE_ID = 7777


def run_projects(repo: ProjectRepository) -> None:
    repo.upsert(Project(id=DEMO_PROJECT_ID, title="Test Project"))
    project = repo.get_by_id(DEMO_PROJECT_ID)
    logger.info(f"Project found: {project}")
    logger.info(f"Total projects in DB: {repo.count()}")


def run_authors(repo: AuthorRepository) -> None:
    author = repo.get_or_create(DEMO_AUTHOR_ID, "Test Author")
    logger.info(f"Author created/retrieved: #{author.id} {author.name!r}")


def run_issues(repo: IssueRepository) -> None:
    now = datetime.now(timezone.utc)
    repo.upsert(Issue(
        id=DEMO_ISSUE_ID,
        project_id=DEMO_PROJECT_ID,
        author_id=DEMO_AUTHOR_ID,
        assignee_id=DEMO_AUTHOR_ID,
        key=f"TEST-{DEMO_ISSUE_ID}",
        summary="Test issue summary",
        description="Test description",
        type="Bug",
        priority="Medium",
        status="Open",
        created_time=now,
        updated_time=now,
        time_spent=120,
    ))
    issue = repo.get_by_id(DEMO_ISSUE_ID)
    if issue is None:
        raise NotFoundError(f"issue {DEMO_ISSUE_ID} missing after upsert")
    logger.info(f"Issue found: {issue} ({'closed' if issue.is_closed() else 'open'})")
    logger.info(
        f"Project {DEMO_PROJECT_ID} statistics: "
        f"open={repo.get_open_count_by_project(DEMO_PROJECT_ID)}, "
        f"closed={repo.get_closed_count_by_project(DEMO_PROJECT_ID)}"
    )


def run_status_changes(repo: StatusChangeRepository) -> None:
    repo.create(StatusChange(
        issue_id=DEMO_ISSUE_ID,
        author_id=DEMO_AUTHOR_ID,
        change_time=datetime.now(timezone.utc),
        from_status="Open",
        to_status="In Progress",
    ))
    logger.info(f"Status changes for issue {DEMO_ISSUE_ID}: {len(repo.get_by_issue_id(DEMO_ISSUE_ID))}")


def run_analytics(repo: AnalyticsRepository) -> None:
    payload = {"bins": [10, 20, 30], "values": [5, 15, 25]}
    repo.save_open_task_time(DEMO_PROJECT_ID, payload)
    repo.save_task_state_time(DEMO_PROJECT_ID, "Open", payload)
    repo.save_complexity_task_time(DEMO_PROJECT_ID, payload)
    repo.save_task_priority_count(DEMO_PROJECT_ID, "Open", payload)
    repo.save_activity_by_task(DEMO_PROJECT_ID, "Open", payload)
    records = repo.get_open_task_time(DEMO_PROJECT_ID)
    logger.info(f"Records in open_task_time for project {DEMO_PROJECT_ID}: {len(records)}")


def main() -> int:
    """Connect, bootstrap the schema, and run every repository once."""
    try:
        with Database.connect(DBConfig.from_env()) as db:
            create_tables(db)
            run_projects(ProjectRepository(db))
            run_authors(AuthorRepository(db))
            run_issues(IssueRepository(db))
            run_status_changes(StatusChangeRepository(db))
            run_analytics(AnalyticsRepository(db))
    except RepositoryError as e:
        logger.error(f"Smoke run failed: {e}")
        return 1
    logger.info("All repositories exercised successfully.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
