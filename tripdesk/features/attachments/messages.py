from __future__ import annotations

# User-facing strings. The product UI is Hebrew.

FILE_TOO_LARGE = "הקובץ {name} גדול מדי (מקסימום {max_mb}MB)"
FILE_TYPE_NOT_ALLOWED = "סוג הקובץ {name} אינו נתמך (תמונות, PDF, Word, Excel בלבד)"
LINK_REQUIRED = "יש להזין כתובת קישור"
LINK_INVALID = "כתובת הקישור אינה תקינה"
LINK_ADDED = "קישור נוסף"
FILE_STAGED = "הקובץ {name} יישמר לאחר שמירת הבקשה"
UPLOAD_FAILED = "שגיאה בהעלאת {name}"
SAVE_FAILED = "שגיאה בשמירת פרטי הקובץ {name}"
LINK_SAVE_FAILED = "שגיאה בשמירת הקישור {url}"
UPLOAD_BATCH_SUCCESS = "{count} קבצים נוספו בהצלחה"
UPLOAD_ONE_SUCCESS = "הקובץ {name} הועלה בהצלחה"
LINK_SAVED = "הקישור נשמר"
LOAD_FAILED = "שגיאה בטעינת הקבצים המצורפים"
DELETE_FAILED = "שגיאה במחיקת הקובץ"
DELETED = "הקובץ נמחק"
STORAGE_REMOVE_FAILED = "לא ניתן היה למחוק את הקובץ {name} מהאחסון"
BUSY = "העלאה מתבצעת כעת, נא להמתין"
NO_PARENT = "יש לשמור את הבקשה לפני העלאת קבצים"
