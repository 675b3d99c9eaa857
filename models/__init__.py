from .models import (
    User, Subject, Note, NoteTag, NoteDownload,
    UserRoleEnum, NoteVisibilityEnum, LISTABLE_VISIBILITIES
)
