from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Response, status

from tripsplit.core.dependencies import get_current_member, get_db
from tripsplit.core.errors import NotFoundError, ValidationError
from tripsplit.db.dal import Database
from tripsplit.models.trip import MemberAdd, Trip, TripCreate
from tripsplit.services.membership import require_admin, require_member, require_trip

router = APIRouter(prefix="/trips", tags=["trips"])
logger = logging.getLogger("tripsplit.trips")


@router.post(
    "/",
    response_model=Trip,
    status_code=status.HTTP_201_CREATED,
    summary="Create trip (caller becomes admin)",
)
async def create_trip(
    payload: TripCreate,
    member_id: str = Depends(get_current_member),
    db: Database = Depends(get_db),
):
    trip_id = db.create_trip(
        name=payload.name,
        created_by=member_id,
        description=payload.description,
        destination=payload.destination,
    )
    logger.info("trip %s created", trip_id)
    return require_trip(db, trip_id)


@router.get("/", response_model=list[Trip], summary="List the caller's trips")
async def list_trips(
    member_id: str = Depends(get_current_member),
    db: Database = Depends(get_db),
):
    return db.list_trips_for_member(member_id)


@router.get("/{trip_id}", response_model=Trip, summary="Get trip details")
async def get_trip(
    trip_id: str,
    member_id: str = Depends(get_current_member),
    db: Database = Depends(get_db),
):
    trip = require_trip(db, trip_id)
    require_member(trip, member_id, "view this trip")
    return trip


@router.post(
    "/{trip_id}/members",
    response_model=Trip,
    status_code=status.HTTP_201_CREATED,
    summary="Add a member to the roster (admin only)",
)
async def add_member(
    trip_id: str,
    payload: MemberAdd,
    member_id: str = Depends(get_current_member),
    db: Database = Depends(get_db),
):
    trip = require_trip(db, trip_id)
    require_admin(trip, member_id, "add members")
    if not db.add_member(trip_id, payload.member_id, payload.role):
        raise ValidationError(
            "Member already belongs to this trip",
            {"field": "member_id", "member_id": payload.member_id},
        )
    logger.info("member %s added to trip %s", payload.member_id, trip_id)
    return require_trip(db, trip_id)


@router.delete(
    "/{trip_id}/members/{target_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove a member from the roster (admin only)",
)
async def remove_member(
    trip_id: str,
    target_id: str,
    member_id: str = Depends(get_current_member),
    db: Database = Depends(get_db),
):
    trip = require_trip(db, trip_id)
    require_admin(trip, member_id, "remove members")
    if target_id == trip.created_by:
        raise ValidationError(
            "The trip creator cannot be removed", {"field": "member_id", "member_id": target_id}
        )
    if not db.remove_member(trip_id, target_id):
        raise NotFoundError("member", target_id)
    # Historical expenses keep the removed member's shares untouched.
    logger.info("member %s removed from trip %s", target_id, trip_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
