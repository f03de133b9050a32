import decimal
import logging

import boto3
from boto3.dynamodb.types import TypeDeserializer, TypeSerializer

from .database_service import DatabaseService
from ._helpers import validate_only_sort_key
from ..conditions import DynamoCondition
from ..config import make_table_name
from ..requests import BatchGetResult, BatchWriteResult, write_request_from_dynamo
from ..updates import generate_update

logger = logging.getLogger(__name__)


class AwsDynamoService(DatabaseService):
    @staticmethod
    def from_config(config):
        db = boto3.client(
            "dynamodb",
            **notnone(region_name=config.region_name, endpoint_url=config.endpoint_url),
        )
        logger.info("Using DynamoDB at %s (offline: %s, table prefix: %r)",
                    config.endpoint_url or "default endpoint", config.offline, config.table_prefix)
        return AwsDynamoService(db, config.table_prefix)

    def __init__(self, db, db_prefix=""):
        self.db = db
        self.db_prefix = db_prefix

    def get_item(self, table_name, key):
        result = self.db.get_item(TableName=self._table(table_name), Key=self._encode(key))
        return self._decode(result.get("Item", None))

    def put_item(self, table_name, item):
        self.db.put_item(TableName=self._table(table_name), Item=self._encode(item))

    def update_item(self, table_name, key, updates):
        expression = generate_update(updates)
        if "ExpressionAttributeValues" in expression:
            expression["ExpressionAttributeValues"] = self._encode(expression["ExpressionAttributeValues"])

        response = self.db.update_item(
            TableName=self._table(table_name),
            Key=self._encode(key),
            **expression,
            # Return the full new item after update
            ReturnValues="ALL_NEW",
        )
        return self._decode(response.get("Attributes", {}))

    def delete_item(self, table_name, key, condition=None):
        condition = dict(condition or {})
        if "ExpressionAttributeValues" in condition:
            condition["ExpressionAttributeValues"] = self._encode(condition["ExpressionAttributeValues"])

        response = self.db.delete_item(
            TableName=self._table(table_name),
            Key=self._encode(key),
            ReturnValues="ALL_OLD",
            **condition,
        )
        return self._decode(response.get("Attributes", None))

    def query(self, table_name, key, index_name=None, reverse=False, limit=None, pagination_token=None):
        key_expression, attr_values, attr_names = self._prep_query_data(key)
        result = self.db.query(
            **notnone(
                TableName=self._table(table_name),
                IndexName=index_name,
                KeyConditionExpression=key_expression,
                ExpressionAttributeValues=attr_values,
                ExpressionAttributeNames=attr_names,
                ScanIndexForward=not reverse,
                Limit=limit,
                ExclusiveStartKey=self._encode(pagination_token) if pagination_token else None,
            )
        )
        return self._decode_page(result)

    def scan(self, table_name, limit=None, pagination_token=None):
        result = self.db.scan(
            **notnone(
                TableName=self._table(table_name),
                Limit=limit,
                ExclusiveStartKey=self._encode(pagination_token) if pagination_token else None,
            )
        )
        logger.debug("Scanned %s, count: %s", table_name, result.get("Count"))
        return self._decode_page(result)

    def batch_write(self, requests_by_table):
        real_to_logical = {}
        request_items = {}
        for table_name, requests in requests_by_table.items():
            if not requests:
                continue
            real_name = self._table(table_name)
            real_to_logical[real_name] = table_name
            request_items[real_name] = [r.to_dynamo(self._encode) for r in requests]

        # DynamoDB rejects a batch without requests
        if not request_items:
            return BatchWriteResult()

        result = self.db.batch_write_item(RequestItems=request_items)
        return BatchWriteResult(unprocessed={
            real_to_logical.get(real_name, real_name): [write_request_from_dynamo(r, self._decode) for r in requests]
            for real_name, requests in result.get("UnprocessedItems", {}).items()
            if requests
        })

    def batch_get(self, keys_by_table):
        real_to_logical = {}
        request_items = {}
        for table_name, keys in keys_by_table.items():
            if not keys:
                continue
            real_name = self._table(table_name)
            real_to_logical[real_name] = table_name
            request_items[real_name] = {"Keys": [self._encode(k) for k in keys]}

        # DynamoDB rejects a batch without keys
        if not request_items:
            return BatchGetResult()

        result = self.db.batch_get_item(RequestItems=request_items, ReturnConsumedCapacity="NONE")
        return BatchGetResult(
            items={
                real_to_logical.get(real_name, real_name): [self._decode(row) for row in rows]
                for real_name, rows in result.get("Responses", {}).items()
            },
            unprocessed_keys={
                real_to_logical.get(real_name, real_name): [self._decode(k) for k in entry.get("Keys", [])]
                for real_name, entry in result.get("UnprocessedKeys", {}).items()
                if entry.get("Keys")
            },
        )

    def list_tables(self, limit=10):
        result = self.db.list_tables(Limit=limit)
        return result.get("TableNames", [])

    def _table(self, table_name):
        return make_table_name(self.db_prefix, table_name)

    def _prep_query_data(self, key):
        eq_conditions, special_conditions = DynamoCondition.partition(key)
        validate_only_sort_key(eq_conditions, special_conditions)

        # We must escape field names with a '#' because Dynamo is unhappy
        # with fields called 'name', 'status' etc:
        # https://docs.aws.amazon.com/amazondynamodb/latest/developerguide/ReservedWords.html
        key_expression = " AND ".join(
            [f"#{field} = :{field}" for field in eq_conditions.keys()]
            + [cond.to_dynamo_expression(field) for field, cond in special_conditions.items()]
        )

        attr_values = {f":{field}": DDB_SERIALIZER.serialize(value) for field, value in eq_conditions.items()}
        for field, cond in special_conditions.items():
            attr_values.update(cond.to_dynamo_values(field))

        attr_names = {"#" + field: field for field in key.keys()}

        return key_expression, attr_values, attr_names

    def _decode_page(self, result):
        items = [self._decode(x) for x in result.get("Items", [])]
        continuation_key = self._decode(result.get("LastEvaluatedKey", None))
        return items, continuation_key or None

    def _encode(self, data):
        return {k: DDB_SERIALIZER.serialize(replace_floats(v)) for k, v in data.items()}

    def _decode(self, data):
        if data is None:
            return None

        return {k: replace_decimals(DDB_DESERIALIZER.deserialize(v)) for k, v in data.items()}


DDB_SERIALIZER = TypeSerializer()
DDB_DESERIALIZER = TypeDeserializer()


def notnone(**kwargs):
    return {k: v for k, v in kwargs.items() if v is not None}


def replace_floats(obj):
    """The serializer refuses floats, so hand it Decimals instead."""
    if isinstance(obj, float):
        return decimal.Decimal(str(obj))
    elif isinstance(obj, list):
        return [replace_floats(x) for x in obj]
    elif isinstance(obj, set):
        return {replace_floats(x) for x in obj}
    elif isinstance(obj, dict):
        return {k: replace_floats(v) for k, v in obj.items()}
    else:
        return obj


def replace_decimals(obj):
    """
    Replace Decimals with native Python values.

    The default DynamoDB deserializer returns Decimals instead of ints,
    which we can't to-JSON.
    """
    if isinstance(obj, list):
        return [replace_decimals(x) for x in obj]
    elif isinstance(obj, set):
        return {replace_decimals(x) for x in obj}
    elif isinstance(obj, dict):
        return {k: replace_decimals(v) for k, v in obj.items()}
    elif isinstance(obj, decimal.Decimal):
        if obj % 1 == 0:
            return int(obj)
        else:
            return float(obj)
    else:
        return obj
