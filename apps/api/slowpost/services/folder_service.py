"""System folder helpers."""

from uuid import UUID

from sqlalchemy.orm import Session

from slowpost.db.enums import SystemFolderType
from slowpost.db.models import Folder

SYSTEM_FOLDER_NAMES = {
    SystemFolderType.UNOPENED: "Unopened",
    SystemFolderType.OPENED: "Opened",
    SystemFolderType.DRAFTS: "Drafts",
}


def get_system_folder(db: Session, user_id: UUID, system_type: SystemFolderType) -> Folder | None:
    return (
        db.query(Folder)
        .filter(Folder.user_id == user_id, Folder.system_type == system_type.value)
        .first()
    )


def get_or_create_system_folder(
    db: Session, user_id: UUID, system_type: SystemFolderType
) -> Folder:
    """
    Return the user's system folder, creating it if missing.

    Folders are seeded at account creation; this covers accounts that
    predate seeding. Flushes but does not commit.
    """
    folder = get_system_folder(db, user_id, system_type)
    if folder:
        return folder
    folder = Folder(
        user_id=user_id,
        name=SYSTEM_FOLDER_NAMES[system_type],
        system_type=system_type.value,
    )
    db.add(folder)
    db.flush()
    return folder


def seed_system_folders(db: Session, user_id: UUID) -> list[Folder]:
    return [get_or_create_system_folder(db, user_id, t) for t in SystemFolderType]


def get_user_folder(db: Session, user_id: UUID, folder_id: UUID) -> Folder | None:
    return (
        db.query(Folder)
        .filter(Folder.id == folder_id, Folder.user_id == user_id)
        .first()
    )
