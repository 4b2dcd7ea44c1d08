class _NotTracked:
    def __bool__(self):
        return False

    def __repr__(self):
        return 'NOT_TRACKED'


NOT_TRACKED = _NotTracked()


class RelationValueTracker:
    """Remembers, per relation, the value it had before the first assignment of a save cycle.

    A relation that was never assigned has no entry, which the cascade reads
    as "leave this relation alone".
    """

    def __init__(self):
        self._old_values = {}

    def capture(self, name: str, current_value) -> bool:
        if name in self._old_values:
            return False
        if isinstance(current_value, (list, tuple)):
            current_value = list(current_value)
        self._old_values[name] = current_value
        return True

    def snapshot_of(self, name: str):
        return self._old_values.get(name, NOT_TRACKED)

    def clear(self, name: str):
        self._old_values.pop(name, None)

    def reset(self):
        self._old_values = {}

    def tracked_names(self) -> list[str]:
        return list(self._old_values)

    def __contains__(self, name):
        return name in self._old_values

    def __len__(self):
        return len(self._old_values)

    def __bool__(self):
        return bool(self._old_values)
