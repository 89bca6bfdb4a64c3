"""
Success envelopes shared by every endpoint.
"""

from rest_framework import status
from rest_framework.response import Response


def success_response(data=None, message=None, status_code=status.HTTP_200_OK, **extra):
    body = {"success": True}
    if message:
        body["message"] = message
    if data is not None:
        body["data"] = data
    body.update(extra)
    return Response(body, status=status_code)


def created_response(data=None, message="Resource created successfully"):
    return success_response(data, message, status.HTTP_201_CREATED)
