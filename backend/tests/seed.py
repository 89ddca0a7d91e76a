"""Seed helpers shared by the service and API tests."""

from datetime import datetime, timedelta, timezone

from gigboard.core.domain_types import ApplicationStatus, ProjectStatus, UserRole
from gigboard.models import Admin, Application, Client, Freelancer, Project, User
from gigboard.services.actors import Actor


async def make_user(db, role: UserRole, email: str, name: str | None = None, **profile):
    """Insert a user plus its role profile and return the matching Actor."""
    user = User(
        email=email.lower(),
        password_hash="not-a-real-hash",
        name=name or email.split("@")[0].title(),
        role=role.value,
    )
    db.add(user)
    await db.flush()
    if role == UserRole.CLIENT:
        record = Client(user_id=user.id, **profile)
        field = "client"
    elif role == UserRole.FREELANCER:
        record = Freelancer(user_id=user.id, **profile)
        field = "freelancer"
    else:
        record = Admin(user_id=user.id, **profile)
        field = "admin"
    db.add(record)
    await db.commit()
    await db.refresh(record, attribute_names=["user"])
    return Actor(user=user, role=role, **{field: record})


async def make_project(
    db,
    client: Client,
    status: ProjectStatus = ProjectStatus.OPEN,
    assigned_to=None,
    title: str = "Build a landing page",
    **fields,
) -> Project:
    project = Project(
        client_id=client.id,
        title=title,
        description="A responsive landing page with a contact form.",
        status=status.value,
        assigned_to=assigned_to,
        **fields,
    )
    db.add(project)
    await db.commit()
    await db.refresh(project, attribute_names=["client"])
    return project


async def make_application(
    db, project: Project, freelancer: Freelancer,
    status: ApplicationStatus = ApplicationStatus.PENDING,
) -> Application:
    application = Application(
        project_id=project.id,
        freelancer_id=freelancer.id,
        proposal="I have built many of these.",
        status=status.value,
    )
    db.add(application)
    await db.commit()
    return application


def future(hours: int = 24) -> datetime:
    return datetime.now(timezone.utc) + timedelta(hours=hours)
