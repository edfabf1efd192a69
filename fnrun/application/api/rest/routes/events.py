"""Sidecar app-callback routes: subscriptions, input bindings and topic deliveries."""

from typing import Any

from dishka.integrations.fastapi import DishkaRoute, FromDishka
from fastapi import APIRouter, Request, Response
from fastapi.responses import JSONResponse

from fnrun.application.trigger.event import EventTrigger, TopicSubscription
from fnrun.domain.function.model import json_format
from fnrun.domain.function.model.event import CLOUDEVENT_SPEC_VERSION
from fnrun.domain.shared.error import DeliveryError, EventFormatError, NotFoundError

router = APIRouter(tags=["events"], route_class=DishkaRoute)

STATUS_SUCCESS = "SUCCESS"
STATUS_RETRY = "RETRY"


def topic_event_fields(subscription: TopicSubscription, body: bytes) -> dict[str, Any]:
    """Unpack a topic delivery envelope; raw payloads are passed through as data."""
    try:
        event = json_format.deserialize(body)
    except EventFormatError:
        return {
            "pubsub_name": subscription.pubsub_name,
            "id": "",
            "topic": subscription.topic,
            "data": body,
        }

    extensions = dict(event.extensions)
    pubsub_name = extensions.pop("pubsubname", subscription.pubsub_name)
    topic = extensions.pop("topic", subscription.topic)
    return {
        "pubsub_name": pubsub_name,
        "id": event.id,
        "topic": topic,
        "specversion": event.specversion or CLOUDEVENT_SPEC_VERSION,
        "source": event.source,
        "type": event.type,
        "datacontenttype": event.datacontenttype or "",
        "data": event.data or b"",
        "extensions": extensions,
    }


@router.get("/dapr/subscribe")
async def list_subscriptions(trigger: FromDishka[EventTrigger]) -> list[dict[str, Any]]:
    """Topics the sidecar should deliver to this function."""
    return [
        {
            "pubsubname": s.pubsub_name,
            "topic": s.topic,
            "route": f"/{s.route}",
            "metadata": s.metadata,
        }
        for s in trigger.list_topic_subscriptions()
    ]


@router.options("/{name}")
async def check_binding(name: str, trigger: FromDishka[EventTrigger]) -> Response:
    """The sidecar checks each input binding before delivering to it."""
    if not trigger.has_binding(name):
        raise NotFoundError(f"Unknown input binding '{name}'")
    return Response(status_code=200)


@router.post("/{name}")
async def deliver(name: str, request: Request, trigger: FromDishka[EventTrigger]) -> Response:
    body = await request.body()
    subscription = trigger.subscription_for(name)

    try:
        if subscription is not None:
            await trigger.on_topic_event(**topic_event_fields(subscription, body))
            return JSONResponse({"status": STATUS_SUCCESS})

        if trigger.has_binding(name):
            metadata = {k.lower(): v for k, v in request.headers.items()}
            await trigger.on_binding_event(name, metadata, body)
            return Response(status_code=200)
    except DeliveryError as e:
        return JSONResponse(status_code=500, content={"status": STATUS_RETRY, "message": e.message})

    raise NotFoundError(f"No input binding or subscription routed to '{name}'")
