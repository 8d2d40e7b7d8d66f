from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Request

from users_api.repositories.user_repository import UserRepository

router = APIRouter(prefix="/users", tags=["users"])


def _get_repository(request: Request) -> UserRepository:
    repo = getattr(getattr(request.app, "state", None), "user_repository", None)
    if not repo:
        raise RuntimeError("UserRepository not configured")
    return repo


@router.get("")
def list_users(request: Request):
    return [u.to_dict() for u in _get_repository(request).list()]


# static paths first so they are not captured by /{user_id}
@router.get("/sorted")
def list_users_sorted(request: Request):
    return [u.to_dict() for u in _get_repository(request).list_sorted()]


@router.get("/age/{age}")
def list_users_older_than(age: str, request: Request):
    return [u.to_dict() for u in _get_repository(request).list_by_age_greater_than(age)]


@router.get("/domain/{domain}")
def list_users_by_domain(domain: str, request: Request):
    return [u.to_dict() for u in _get_repository(request).list_by_email_domain(domain)]


@router.get("/{user_id}")
def get_user(user_id: str, request: Request):
    return _get_repository(request).get(user_id).to_dict()


@router.post("", status_code=201)
def create_users(request: Request, payload: Any = Body(None)):
    repo = _get_repository(request)
    if isinstance(payload, list):
        return [u.to_dict() for u in repo.create_many(payload)]
    return repo.create(payload).to_dict()


@router.put("/{user_id}")
def update_user(user_id: str, request: Request, payload: Any = Body(None)):
    if payload is None:
        payload = {}
    return _get_repository(request).update(user_id, payload).to_dict()


@router.delete("/{user_id}")
def delete_user(user_id: str, request: Request):
    return _get_repository(request).delete(user_id).to_dict()
