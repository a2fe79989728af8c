"""Constants for the Medicine Cabinet integration."""

DOMAIN = "medicine_cabinet"

# Configuration Keys (Entry Level)
CONF_PATIENT = "patient"
CONF_TZ_SENSOR = "tz_sensor" # Global Timezone Sensor for the User
CONF_NOTIFY_SERVICE = "notify_service"
CONF_CONFIG_ENTRY_ID = "config_entry_id"

# Medicine Properties (Item Level)
CONF_MEDICINE_ID = "med_id"
CONF_NAME = "name"
CONF_QUANTITY = "quantity"
CONF_DOSAGE = "dosage"
CONF_EXPIRATION_DATE = "expiration_date"
CONF_CATEGORY = "category"
CONF_FAVORITE = "is_favorite"
CONF_IMAGE = "image"

# Reminder Properties
CONF_REMINDER_ID = "reminder_id"
CONF_SCHEDULE_DAYS = "days"
CONF_SCHEDULE_TIME = "time"
CONF_SCHEDULE_DATE = "date"

# Notification log / appointment / profile properties
CONF_NOTIFICATION_ID = "notification_id"
CONF_TITLE = "title"
CONF_SUBTITLE = "subtitle"
CONF_TYPE = "type"
CONF_APPOINTMENT_ID = "appointment_id"
CONF_DOCTOR = "doctor"
CONF_SPECIALTY = "specialty"
CONF_FIRST_NAME = "first_name"
CONF_LAST_NAME = "last_name"
CONF_BIRTH_DATE = "birth_date"
CONF_PROFILE_IMAGE = "profile_image"

# Storage
STORAGE_VERSION = 1
STORAGE_KEY_MEDICINES = "medicines"
STORAGE_KEY_CATEGORIES = "categories"
STORAGE_KEY_REMINDERS = "medicineReminders"
STORAGE_KEY_NOTIFICATION_LOGS = "notificationLogs"
STORAGE_KEY_APPOINTMENTS = "appointments"
STORAGE_KEY_PROFILE = "profile"

# Events
EVENT_NOTIFICATION_DELIVERED = f"{DOMAIN}_notification_delivered"
EVENT_NOTIFICATION_TAPPED = f"{DOMAIN}_notification_tapped"

# Dispatcher signal, formatted with the entry id
SIGNAL_UPDATED = f"{DOMAIN}_updated_{{}}"

REMINDER_TITLE = "Medication reminder"

# One-shot triggers never fire sooner than this
MIN_ONE_SHOT_DELAY = 5

# Weekdays, ISO numbering (Monday=1 ... Sunday=7)
WEEKDAYS = {
    1: "Monday",
    2: "Tuesday",
    3: "Wednesday",
    4: "Thursday",
    5: "Friday",
    6: "Saturday",
    7: "Sunday",
}

# Notification types
TYPE_PILL = "pill"
TYPE_INJECTION = "injection"
TYPE_DROPS = "drops"
NOTIFICATION_TYPES = [TYPE_PILL, TYPE_INJECTION, TYPE_DROPS]

CATEGORY_ALL = "all"

DEFAULT_CATEGORIES = [
    "Pain relief",
    "Antibiotics",
    "Supplements",
    "Vitamins",
    "Other",
    "Dressings",
    "Anti-inflammatory",
    "Antihistamines",
    "Gastrointestinal",
    "Cardiovascular",
    "Vitamins and supplements",
    "Antidepressants",
    "Antivirals",
    "Hormonal",
]

SPECIALTIES = [
    "General practitioner",
    "Pediatrician",
    "Dentist",
    "Surgeon",
    "Cardiologist",
    "Ophthalmologist",
    "Neurologist",
    "Gynecologist",
    "Urologist",
    "Endocrinologist",
    "Rheumatologist",
    "Psychotherapist",
    "Dietitian",
    "Physiotherapist",
    "Oncologist",
    "ENT (otolaryngologist)",
    "Allergist",
    "Pulmonologist",
    "Gastroenterologist",
    "Traumatologist",
]
DEFAULT_SPECIALTY = SPECIALTIES[0]

DOCTOR_PREFIX = "Dr. "
