import os
import random
import time
from typing import Optional

MAX_SUFFIX = 10 ** 9


def original_extension(original_name: Optional[str]) -> str:
    """Extension of the client's file name, kept verbatim (".JPG", "" for none)."""
    basename = os.path.basename((original_name or "").replace("\\", "/"))
    return os.path.splitext(basename)[1]


def generate_filename(
    field: str,
    original_name: Optional[str],
    now_ms: Optional[int] = None,
    suffix: Optional[int] = None,
) -> str:
    """Build a storage name of the form <field>-<epoch ms>-<random><ext>.

    The timestamp alone collides for requests landing in the same
    millisecond, the random suffix makes that unlikely.
    """
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    if suffix is None:
        suffix = random.randint(0, MAX_SUFFIX)
    return f"{field}-{now_ms}-{suffix}{original_extension(original_name)}"
