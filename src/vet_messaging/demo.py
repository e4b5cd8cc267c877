"""
Messaging session walkthrough on the in-memory backend.

Each step is a separate function so it can be run and inspected on its own.
loguru logs the session state at every step.

Steps at a glance:
    1  build_backend()   - Seed a clinic, its staff and a pet owner
    2  open_session()    - Sign in and load the conversation
    3  send()            - Send a first message (routed to the clinic doctor)
    4  staff_reply()     - Simulate a staff reply arriving over the realtime feed
    5  show()            - Print the conversation

Usage:
    python -m vet_messaging.demo
    MESSAGE="Is Buddy's lab result in?" VET_MESSAGING_LOG_LEVEL=DEBUG python -m vet_messaging.demo
"""

import asyncio
import os

from loguru import logger

from vet_messaging.adapter import ConversationStoreAdapter
from vet_messaging.auth.base import Subject
from vet_messaging.auth.in_memory import InMemoryIdentityProvider
from vet_messaging.config import MessagingSettings, load_settings
from vet_messaging.controller import LiveSessionController
from vet_messaging.data_models.message import MessageDraft
from vet_messaging.identity import IdentityResolver
from vet_messaging.log import configure_logging
from vet_messaging.realtime.in_memory import InMemoryRealtimeFeed
from vet_messaging.store.in_memory import InMemoryRelationalStore

OWNER = Subject(subject_id="78910", email="martin@example.com")
CLINIC_ID = "clinic-1"


def build_backend(settings: MessagingSettings) -> tuple[InMemoryRelationalStore, InMemoryRealtimeFeed]:
    feed = InMemoryRealtimeFeed()
    store = InMemoryRelationalStore(feed=feed, messages_table=settings.messages_table)
    store.add_user(OWNER.subject_id, "Claire", "Martin", role="client", clinic_id=CLINIC_ID)
    store.add_user("doc-7", "Emily", "Carter", role=settings.privileged_role, clinic_id=CLINIC_ID)
    store.add_user("desk-1", "Front", "Desk", role="assistant", clinic_id=CLINIC_ID)
    store.add_client("legacy-42", OWNER.email or "")
    logger.info(f"In-memory backend ready ({len(store.users)} users, {len(store.clients)} client records)")
    return store, feed


async def open_session(
    store: InMemoryRelationalStore,
    feed: InMemoryRealtimeFeed,
    settings: MessagingSettings,
) -> tuple[LiveSessionController, InMemoryIdentityProvider]:
    controller = LiveSessionController(
        adapter=ConversationStoreAdapter(store, privileged_role=settings.privileged_role),
        resolver=IdentityResolver(store),
        feed=feed,
        settings=settings,
    )
    provider = InMemoryIdentityProvider()
    await controller.bind(provider)
    await provider.sign_in(OWNER)
    logger.info(f"Session {controller.state}, self ids {controller.identity.ids if controller.identity else ()}")
    return controller, provider


async def send(controller: LiveSessionController, text: str) -> None:
    outcome = await controller.send(text)
    if not outcome.ok:
        logger.warning(f"Send failed ({outcome.reason}): {outcome.detail}")
        return
    await controller.settle()
    logger.info(f"Sent {text!r} to {controller.display_name(outcome.message.receiver_id) if outcome.message else '?'}")


async def staff_reply(store: InMemoryRelationalStore, controller: LiveSessionController, text: str) -> None:
    target = controller.reply_target or "doc-7"
    await store.insert_message(MessageDraft(sender_id=target, receiver_id=OWNER.subject_id, content=text))
    await controller.settle()


def show(controller: LiveSessionController) -> None:
    print(f"Conversation ({len(controller.messages)} messages):")
    for message in controller.messages:
        who = "Me" if controller.identity and controller.identity.contains(message.sender_id) else controller.display_name(message.sender_id)
        flag = " [not delivered]" if message.delivery_failed else ""
        print(f"  {message.created_at:%H:%M:%S}  {who}: {message.content}{flag}")


async def run_demo(text: str) -> None:
    settings = load_settings()
    configure_logging(settings.log_level)
    logger.info("Starting messaging demo")

    store, feed = build_backend(settings)
    controller, provider = await open_session(store, feed, settings)
    async with controller:
        await send(controller, text)
        await staff_reply(store, controller, "Hello! Buddy's results look normal. Anything else we can help with?")
        await send(controller, "Thank you, that's all.")
        show(controller)
        await provider.sign_out()

    logger.info("Messaging demo done")


if __name__ == "__main__":
    asyncio.run(run_demo(os.getenv("MESSAGE", "Hello, how is Buddy recovering?")))
