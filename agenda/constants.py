APP_NAME = "Agenda"
SCHEMA_VERSION = 1
BACKUP_FORMAT_VERSION = 1

TEXT_FIELDS = ("notes", "goals", "learn", "hard", "next")

FIELD_LABELS = {
    "notes": "Notes",
    "goals": "Goals",
    "learn": "Learnings",
    "hard": "Difficulties",
    "next": "Next step",
}

MANIFEST_NAME = "data.json"
PHOTO_PATH_TEMPLATE = "photos/{date}/{photo_id}.jpg"
PHOTO_MIME = "image/jpeg"

PDF_MAX_PHOTOS = 12
SUMMARY_MAX_CHARS = 180
SEARCH_MAX_RESULTS = 300
INSIGHTS_RECENT_DAYS = 14
KEYWORD_MIN_LENGTH = 4
KEYWORD_TOP_N = 10

STOPWORDS = frozenset(
    [
        # pt-BR
        "para", "com", "mais", "menos", "onde", "quando", "porque", "sobre", "pela", "pelo",
        "este", "esta", "isso", "aquele", "aquela", "hoje", "ontem", "amanha", "amanhã",
        "muito", "pouco", "cada", "todo", "toda", "tudo", "fazer", "feito", "ficar", "ainda",
        "uma", "umas", "uns", "dos", "das", "que", "não", "nao", "por", "tem", "tive", "teve",
        "ser", "são", "sao", "vou", "vai", "era",
        # en
        "that", "this", "with", "from", "have", "been", "were", "what", "when", "where",
        "which", "will", "would", "there", "their", "about", "into", "than", "then", "them",
        "they", "your", "just", "some", "today", "very",
    ]
)

LOCALES = {
    "en": {
        "weekdays": ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"),
        "months": (
            "January", "February", "March", "April", "May", "June",
            "July", "August", "September", "October", "November", "December",
        ),
        "full_date": "{weekday}, {month} {day}, {year}",
        "month_label": "{month} {year}",
    },
    "pt-BR": {
        "weekdays": ("segunda-feira", "terça-feira", "quarta-feira", "quinta-feira", "sexta-feira", "sábado", "domingo"),
        "months": (
            "janeiro", "fevereiro", "março", "abril", "maio", "junho",
            "julho", "agosto", "setembro", "outubro", "novembro", "dezembro",
        ),
        "full_date": "{weekday}, {day} de {month} de {year}",
        "month_label": "{month} de {year}",
    },
}
DEFAULT_LOCALE = "pt-BR"
