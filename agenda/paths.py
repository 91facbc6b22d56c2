import os


def get_data_dir():
    # AGENDA_DATA_DIR wins so tests and portable installs can relocate the journal.
    base = os.environ.get("AGENDA_DATA_DIR", "").strip()
    if not base:
        base = os.path.join(os.path.expanduser("~"), ".agenda")

    os.makedirs(base, exist_ok=True)
    return base


def get_db_path():
    return os.path.join(get_data_dir(), "agenda.db")
