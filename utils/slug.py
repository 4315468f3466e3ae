import re
import unicodedata


def slugify(*parts) -> str:
    text = " ".join(str(part) for part in parts if part not in (None, ""))
    text = unicodedata.normalize("NFKD", text).encode("ascii", "ignore").decode("ascii")
    text = re.sub(r"[^a-zA-Z0-9]+", "-", text).strip("-")
    return text.lower()
