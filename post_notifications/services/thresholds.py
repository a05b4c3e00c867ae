# post_notifications/services/thresholds.py
"""
Batching policy for interaction notifications.

Owners hear about the first like/comment right away, then once per bucket:
1, 10, 20 ... 90, 100, 200 ... 900, 1000, 2000 ...
"""


def should_notify(count: int) -> bool:
    if count <= 0:
        return False
    if count == 1:
        return True
    if count < 100:
        return count % 10 == 0
    if count < 1000:
        return count % 100 == 0
    return count % 1000 == 0


def batch_threshold(count: int) -> int:
    """Bucket floor for `count`; equals `count` whenever should_notify(count)."""
    if count == 1:
        return 1
    if count < 100:
        return count // 10 * 10
    if count < 1000:
        return count // 100 * 100
    return count // 1000 * 1000
