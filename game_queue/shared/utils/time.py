from datetime import datetime, timedelta, timezone

utc_now = lambda: datetime.now(timezone.utc)
ms_to_timedelta = lambda ms: timedelta(milliseconds=int(ms))
