from app.models.vicidial_user import (
    ConnectionProfile, RowTemplate, IdRange, VicidialUserRow, build_row
)

__all__ = ['ConnectionProfile', 'RowTemplate', 'IdRange', 'VicidialUserRow', 'build_row']
