def validate_only_sort_key(eq_conditions, special_conditions):
    """Check that a query key has equality conditions, and a special condition on at most one (sort key) field."""
    if not eq_conditions:
        raise RuntimeError(f"Query needs a partition key value, got only conditions on: {list(special_conditions)}")
    if len(special_conditions) > 1:
        raise RuntimeError(f"Conditions only allowed on the sort key, got: {list(special_conditions)}")
