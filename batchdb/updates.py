"""Update expressions.

An update is a dict mapping attribute names to one of:

    - a plain value: the attribute is set to that value
    - None: the attribute is removed from the record
    - an instance of a DynamoUpdate subclass, for updates that can't be
      expressed as a plain value (increments, set additions, ...)

`generate_update()` turns such a dict into the UpdateExpression and friends
that DynamoDB expects. Values in the result are plain Python values; they
still need to be serialized for the low-level client.
"""
import numbers


class DynamoUpdate:
    def to_clause(self, name):
        """Return (action, clause, values) for this update on attribute `name`."""
        raise NotImplementedError()

    def apply_in_memory(self, record, name):
        raise NotImplementedError()


class DynamoIncrement(DynamoUpdate):
    def __init__(self, delta=1):
        self.delta = delta

    def to_clause(self, name):
        return "ADD", f"#{name} :{name}", {f":{name}": self.delta}

    def apply_in_memory(self, record, name):
        record[name] = record.get(name, 0) + self.delta


class DynamoAddToStringSet(DynamoUpdate):
    """Add one or more elements to a string set."""

    def __init__(self, *elements):
        if not elements:
            raise ValueError("Need at least one element to add")
        self.elements = elements

    def to_clause(self, name):
        return "ADD", f"#{name} :{name}", {f":{name}": set(self.elements)}

    def apply_in_memory(self, record, name):
        existing = record.get(name, set())
        if not isinstance(existing, set):
            raise TypeError(f"Expected a set in {name}, got: {existing}")
        record[name] = existing | set(self.elements)


class DynamoAddToNumberSet(DynamoAddToStringSet):
    """Add one or more elements to a number set."""

    def __init__(self, *elements):
        for el in elements:
            if not isinstance(el, numbers.Real):
                raise ValueError(f"Must be a number, got: {el}")
        super().__init__(*elements)


class DynamoAddToList(DynamoUpdate):
    """Append one or more elements to a list, creating it if necessary."""

    def __init__(self, *elements):
        self.elements = elements

    def to_clause(self, name):
        return (
            "SET",
            f"#{name} = list_append(if_not_exists(#{name}, :{name}_empty), :{name})",
            {f":{name}": list(self.elements), f":{name}_empty": []},
        )

    def apply_in_memory(self, record, name):
        existing = record.get(name, [])
        if not isinstance(existing, list):
            raise TypeError(f"Expected a list in {name}, got: {existing}")
        record[name] = existing + list(self.elements)


class DynamoRemoveFromStringSet(DynamoUpdate):
    """Remove one or more elements from a string set."""

    def __init__(self, *elements):
        if not elements:
            raise ValueError("Need at least one element to remove")
        self.elements = elements

    def to_clause(self, name):
        return "DELETE", f"#{name} :{name}", {f":{name}": set(self.elements)}

    def apply_in_memory(self, record, name):
        existing = record.get(name, set())
        if not isinstance(existing, set):
            raise TypeError(f"Expected a set in {name}, got: {existing}")
        remaining = existing - set(self.elements)
        # Dynamo does not store empty sets
        if remaining:
            record[name] = remaining
        else:
            record.pop(name, None)


class _SetValue(DynamoUpdate):
    def __init__(self, value):
        self.value = value

    def to_clause(self, name):
        return "SET", f"#{name} = :{name}", {f":{name}": self.value}

    def apply_in_memory(self, record, name):
        record[name] = self.value


class _Remove(DynamoUpdate):
    def to_clause(self, name):
        return "REMOVE", f"#{name}", {}

    def apply_in_memory(self, record, name):
        record.pop(name, None)


ACTION_ORDER = ["SET", "REMOVE", "ADD", "DELETE"]


def as_update(value):
    if isinstance(value, DynamoUpdate):
        return value
    if value is None:
        return _Remove()
    return _SetValue(value)


def generate_update(updates):
    """Build UpdateExpression, ExpressionAttributeNames and ExpressionAttributeValues.

    Every attribute name is aliased, so reserved words like 'name' or 'status'
    are safe to use. ExpressionAttributeValues is left out when there are no
    values (a pure REMOVE), because DynamoDB rejects an empty map.
    """
    if not updates:
        raise ValueError("Need at least one attribute to update")

    clauses = {action: [] for action in ACTION_ORDER}
    names = {}
    values = {}
    for name, value in updates.items():
        action, clause, clause_values = as_update(value).to_clause(name)
        clauses[action].append(clause)
        names[f"#{name}"] = name
        values.update(clause_values)

    expression = " ".join(f"{action} {', '.join(clauses[action])}" for action in ACTION_ORDER if clauses[action])

    ret = {
        "UpdateExpression": expression,
        "ExpressionAttributeNames": names,
    }
    if values:
        ret["ExpressionAttributeValues"] = values
    return ret


def apply_updates(record, updates):
    """Apply an update dict to a record in place (for the in-memory db)."""
    for name, value in updates.items():
        as_update(value).apply_in_memory(record, name)
    return record
