# robes_core/constants.py

EXPORT_HEADERS = ("מספר גלימה", "תאריך השאלה", "תאריך החזרה", "סטטוס")

EMPTY_PLACEHOLDER = "-"
TXT_SEPARATOR = "-------------------"
DATETIME_FORMAT = "%d.%m.%Y, %H:%M:%S"

DEFAULT_TIMEZONE = "Asia/Jerusalem"
DEFAULT_DB_PATH = "db/robes.db"
DEFAULT_STORE_URL = "http://localhost:8080"
DEFAULT_COLLECTION = "robes"
DEFAULT_READY_TIMEOUT = 10.0

CSV_FILENAME = "robes_history.csv"
TXT_FILENAME = "robes_history.txt"

# Operator messages per outcome
MSG_BORROWED = "הגלימה הושאלה בהצלחה"
MSG_RETURNED = "הגלימה הוחזרה בהצלחה"
MSG_ALREADY_BORROWED = "גלימה זו כבר מושאלת!"
MSG_NOT_BORROWED = "גלימה זו לא מושאלת!"
MSG_ALREADY_RETURNED = "גלימה זו כבר הוחזרה!"
MSG_FAILED = "שגיאה בשמירת הנתונים. אנא נסה שוב."
MSG_EMPTY_CODE = "קוד ריק"
