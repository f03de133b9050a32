from boto3.dynamodb.types import TypeSerializer
DDB_SERIALIZER = TypeSerializer()

class DynamoCondition:
    """Base class for key conditions in a query.

    Equality is expressed by passing a plain value; these classes encode the
    other comparisons DynamoDB supports in a KeyConditionExpression.

    Conditions only apply to sort keys.
    """

    def to_dynamo_expression(self, _field_name):
        """Render expression part of Dynamo query."""
        raise NotImplementedError()

    def to_dynamo_values(self, _field_name):
        """Render values for the Dynamo expression."""
        raise NotImplementedError()

    def matches(self, value):
        """Whether or not the given value matches the condition (for in-memory db)."""
        raise NotImplementedError()

    @staticmethod
    def partition(key):
        """Split a key into (equality conditions, special conditions)."""
        eq_conditions = {k: v for k, v in key.items() if not isinstance(v, DynamoCondition)}
        special_conditions = {k: v for k, v in key.items() if isinstance(v, DynamoCondition)}

        return (eq_conditions, special_conditions)


class Between(DynamoCondition):
    """Assert that a value is between two other values (inclusive)."""

    def __init__(self, minval, maxval):
        self.minval = minval
        self.maxval = maxval

    def to_dynamo_expression(self, field_name):
        return f"#{field_name} BETWEEN :{field_name}_min AND :{field_name}_max"

    def to_dynamo_values(self, field_name):
        return {
            f":{field_name}_min": DDB_SERIALIZER.serialize(self.minval),
            f":{field_name}_max": DDB_SERIALIZER.serialize(self.maxval),
        }

    def matches(self, value):
        return value is not None and self.minval <= value <= self.maxval


class BeginsWith(DynamoCondition):
    """Assert that a string value starts with a prefix."""

    def __init__(self, prefix):
        self.prefix = prefix

    def to_dynamo_expression(self, field_name):
        return f"begins_with(#{field_name}, :{field_name}_prefix)"

    def to_dynamo_values(self, field_name):
        return {f":{field_name}_prefix": DDB_SERIALIZER.serialize(self.prefix)}

    def matches(self, value):
        return isinstance(value, str) and value.startswith(self.prefix)


class _Comparison(DynamoCondition):
    operator = None

    def __init__(self, value):
        self.value = value

    def to_dynamo_expression(self, field_name):
        return f"#{field_name} {self.operator} :{field_name}_cmp"

    def to_dynamo_values(self, field_name):
        return {f":{field_name}_cmp": DDB_SERIALIZER.serialize(self.value)}

    def matches(self, value):
        return value is not None and self._compare(value)

    def _compare(self, value):
        raise NotImplementedError()


class GreaterThan(_Comparison):
    operator = '>'

    def _compare(self, value):
        return value > self.value


class GreaterThanOrEqual(_Comparison):
    operator = '>='

    def _compare(self, value):
        return value >= self.value


class LessThan(_Comparison):
    operator = '<'

    def _compare(self, value):
        return value < self.value


class LessThanOrEqual(_Comparison):
    operator = '<='

    def _compare(self, value):
        return value <= self.value
