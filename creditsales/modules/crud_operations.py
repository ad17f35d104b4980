from typing import Any
from datetime import datetime
from bson import ObjectId
from pymongo import ReturnDocument
from creditsales.models.generals import Pagination
import json


def JsonObjectFormatter(obj: Any):
    if isinstance(obj, ObjectId):
        return str(obj)

    if isinstance(obj, datetime):
        return str(obj)

    raise TypeError("%r is not JSON serializable" % obj)


def JsonFormatter(data):
    result = json.dumps(data, default=JsonObjectFormatter)
    return json.loads(result)


async def GetDataCount(v_db_collection, v_query={}):
    count: int = await v_db_collection.count_documents(v_query)
    return count


async def GetOneData(
    v_db_collection,
    v_query={},
    v_projection={},
    sort_by=None,
    sort_direction=-1,
    is_json=True,
    session=None,
):
    sort_value = []
    if sort_by:
        sort_value.append((sort_by, sort_direction))

    cursor = v_db_collection.find_one(
        v_query, v_projection or None, sort=sort_value or None, session=session
    )
    result = await cursor
    if is_json:
        result = JsonFormatter(result)

    return result


async def GetListData(
    v_db_collection,
    v_query={},
    v_projection={},
    sort_by=None,
    sort_direction=-1,
    is_json=True,
    session=None,
):
    sort_value = []
    if sort_by:
        sort_value.append((sort_by, sort_direction))

    cursor = v_db_collection.find(
        v_query, v_projection or None, sort=sort_value or None, session=session
    )
    result = await cursor.to_list(None)
    if is_json:
        result = JsonFormatter(result)

    return result


async def GetManyData(
    v_db_collection, v_query, v_projection={}, v_pagination: Pagination = {}
):
    query = []
    query_facet = v_query.copy()
    if v_pagination:
        query.append({"$skip": (v_pagination["page"] - 1) * v_pagination["items"]})
        query.append({"$limit": v_pagination["items"]})

    if v_projection:
        query.append({"$project": v_projection})

    query_facet.append(
        {
            "$facet": {
                "data": query,
                "data_info": [{"$count": "count"}],
            }
        }
    )

    query_facet.append(
        {
            "$project": {
                "_id": 0,
                "data": "$data",
                "count": {"$arrayElemAt": ["$data_info.count", 0]},
            }
        }
    )
    result = await v_db_collection.aggregate(query_facet).to_list(None)
    result = JsonFormatter(result)
    data = []
    if "data" in result[0]:
        data = result[0]["data"]

    count = 0
    if "count" in result[0]:
        count = result[0]["count"]

    return data, count


async def CreateOneData(v_db_collection, v_data, session=None):
    result = await v_db_collection.insert_one(v_data, session=session)
    return result


async def UpdateOneData(
    v_db_collection, v_query, v_update, upsert: bool = False, session=None
):
    result = await v_db_collection.update_one(
        v_query, v_update, upsert=upsert, session=session
    )
    return result


async def UpdateManyData(v_db_collection, v_query, v_update, session=None):
    result = await v_db_collection.update_many(v_query, v_update, session=session)
    return result


async def FindOneAndUpdateData(
    v_db_collection, v_query, v_update, upsert: bool = False, session=None
):
    result = await v_db_collection.find_one_and_update(
        v_query,
        v_update,
        upsert=upsert,
        return_document=ReturnDocument.AFTER,
        session=session,
    )
    return result


async def DeleteOneData(v_db_collection, v_query, session=None):
    result = await v_db_collection.delete_one(v_query, session=session)
    return result
