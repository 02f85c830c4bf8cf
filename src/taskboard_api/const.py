"""Constants for the taskboard Airtable client."""

__version__ = "0.1.0"

API_BASE = "https://api.airtable.com/v0"
TABLE_ENDPOINT = f"{API_BASE}/{{base_id}}/{{table}}"
RECORD_ENDPOINT = f"{API_BASE}/{{base_id}}/{{table}}/{{record_id}}"

ENV_API_KEY = "AIRTABLE_API_KEY"
ENV_BASE_ID = "AIRTABLE_BASE_ID"
ENV_MIN_DELAY_MS = "AIRTABLE_MIN_DELAY_MS"

# 5 requests/sec = 200ms, plus a 20ms margin
DEFAULT_THROTTLE_SECONDS = 0.22

MAX_PAGE_SIZE = 100
DEFAULT_PAGE_SIZE = 50
MAX_BATCH_SIZE = 10

TEAM_CACHE_TTL_SECONDS = 600

PROJECTS_TABLE = "tbl3ZDE3yBKc9UMvo"
TASKS_TABLE = "tblrN9A1ThzCVCCbk"
TEAM_TABLE = "tblxeJD9pPvdj1MJW"

TEAM_NAME_FIELD = "Nombre"

PROJECT_FIELDS = {
    "name": "Nombre del Proyecto",
    "client_name": "Cliente Nombre",
    "university": "Universidad",
    "project_type": "Tipo de Proyecto",
    "status": "Estado Manual",
    "remaining_payment": "Pago Restante",
    "promised_date": "Fecha Prometida",
    "progress": "% Progreso",
    "total_tasks": "Total Tareas",
    "completed_tasks": "Tareas Completadas",
    "responsable": "Responsable",
}

TASK_FIELDS = {
    "name": "Nombre de Tarea",
    "project": "Proyecto",
    "block": "Bloque",
    "order": "Orden",
    "task_type": "Tipo de Tarea",
    "status": "Estado",
    "due_date": "Fecha Límite",
    "start_date": "Fecha Inicio",
    "completed_date": "Fecha Completado",
    "description": "Descripción",
    "notes": "Notas",
    "responsable": "Responsable",
}

STATUS_PENDING = "Pendiente"
STATUS_IN_PROGRESS = "En progreso"
STATUS_IN_REVIEW = "En revisión"
STATUS_COMPLETED = "Completado"

TASK_STATUS_OPTIONS = (
    STATUS_PENDING,
    STATUS_IN_PROGRESS,
    STATUS_IN_REVIEW,
    STATUS_COMPLETED,
)

TASK_BLOCK_OPTIONS = (
    "1° Bloque",
    "2° Bloque",
    "3° Bloque",
    "4° Bloque",
    "5° Bloque",
    "6° Bloque",
)

TASK_TYPE_OPTIONS = ("Pearson", "Cliente", "Aprobación Universidad")

PROJECT_STATUS_OPTIONS = (
    "En progreso",
    "En revisión",
    "En pausa",
    "Terminado",
    "Interrumpido",
)

# Filter values meaning "no status filter"
ALL_STATUSES = frozenset({"all", "Todos", "Todos los estados"})

DEFAULT_PROJECT_NAME = "Sin nombre"
DEFAULT_CLIENT_NAME = "Sin cliente"
DEFAULT_TASK_NAME = "Sin nombre"
NO_TASKS_PROGRESS = "Sin tareas"
