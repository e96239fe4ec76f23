# pbf_studio/store.py
# Object store for images and the persisted studio state snapshot.
import json
import logging
import threading
from typing import List, Optional

from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlmodel import Session, col, select, delete

from pbf_studio.config import HISTORY_LIMIT
from pbf_studio.database import engine
from pbf_studio.models import ChatMessage, StateSnapshot, StoredImage, StudioState, utcnow
from pbf_studio.prompts import INITIAL_ASSISTANT_MESSAGE

logger = logging.getLogger(__name__)

# Serializes read-modify-write of the snapshot row and the pruning that follows it
_state_lock = threading.Lock()

# ====== Images ======

def save_image(data: str, image_id: Optional[str] = None) -> StoredImage:
    row = StoredImage(id=image_id, data=data) if image_id else StoredImage(data=data)
    stmt = sqlite_insert(StoredImage).values(id=row.id, data=row.data, timestamp=row.timestamp)
    stmt = stmt.on_conflict_do_update(index_elements=["id"], set_={"data": row.data, "timestamp": row.timestamp})
    with Session(engine) as session:
        session.exec(stmt)
        session.commit()
    return row

def get_image(image_id: str) -> Optional[StoredImage]:
    with Session(engine) as session:
        return session.get(StoredImage, image_id)

def list_images(limit: Optional[int] = None) -> List[StoredImage]:
    with Session(engine) as session:
        query = select(StoredImage).order_by(StoredImage.timestamp.desc())
        if limit:
            query = query.limit(limit)
        return list(session.exec(query).all())

def delete_image(image_id: str) -> bool:
    """Delete one image and drop it from the snapshot's history."""
    with _state_lock:
        with Session(engine) as session:
            row = session.get(StoredImage, image_id)
            if not row:
                return False
            session.delete(row)
            session.commit()

        state = load_state()
        if image_id in state.history or state.generated_image == image_id:
            _write_state(state.model_copy(update={
                "history": [h for h in state.history if h != image_id],
                "generated_image": None if state.generated_image == image_id else state.generated_image,
            }))
    return True

def clear_images() -> None:
    with _state_lock:
        with Session(engine) as session:
            session.exec(delete(StoredImage))
            session.commit()
            has_state = session.get(StudioState, 1) is not None
        if has_state:
            state = load_state()
            _write_state(state.model_copy(update={"history": [], "generated_image": None}))

# ====== State snapshot ======

def default_state() -> StateSnapshot:
    return StateSnapshot(messages=[ChatMessage(role="assistant", content=INITIAL_ASSISTANT_MESSAGE)])

def load_state() -> StateSnapshot:
    with Session(engine) as session:
        row = session.get(StudioState, 1)
    if not row:
        return default_state()
    messages = [ChatMessage(**m) for m in json.loads(row.messages)]
    return StateSnapshot(
        api_key=row.api_key,
        messages=messages or default_state().messages,
        history=json.loads(row.history),
        generated_image=row.generated_image,
        mode=row.mode,
    )

def _write_state(snapshot: StateSnapshot, previous: Optional[StateSnapshot] = None) -> StateSnapshot:
    """Upsert the snapshot row, trimming history and pruning evicted images.

    An image is evicted when it was referenced by ``previous`` or cut off by
    the history cap, and the new snapshot no longer references it.
    """
    kept = snapshot.history[:HISTORY_LIMIT]
    evicted = set(snapshot.history[HISTORY_LIMIT:])
    if previous is not None:
        evicted.update(previous.history)
        if previous.generated_image:
            evicted.add(previous.generated_image)
    evicted -= set(kept)
    evicted.discard(snapshot.generated_image)
    snapshot = snapshot.model_copy(update={"history": kept})

    values = {
        "api_key": snapshot.api_key,
        "messages": json.dumps([m.model_dump() for m in snapshot.messages], ensure_ascii=False),
        "history": json.dumps(snapshot.history),
        "generated_image": snapshot.generated_image,
        "mode": snapshot.mode,
        "updated_at": utcnow(),
    }
    stmt = sqlite_insert(StudioState).values(id=1, **values)
    stmt = stmt.on_conflict_do_update(index_elements=["id"], set_=values)
    with Session(engine) as session:
        session.exec(stmt)
        if evicted:
            session.exec(delete(StoredImage).where(col(StoredImage.id).in_(evicted)))
        session.commit()
    if evicted:
        logger.info("Pruned %d image(s) no longer in history", len(evicted))
    return snapshot

def save_state(snapshot: StateSnapshot) -> StateSnapshot:
    with _state_lock:
        return _write_state(snapshot, load_state())

def clear_state() -> None:
    with _state_lock:
        with Session(engine) as session:
            row = session.get(StudioState, 1)
            if row:
                session.delete(row)
                session.commit()

def push_history(image_id: str) -> StateSnapshot:
    """Make ``image_id`` the current image and the newest history entry."""
    with _state_lock:
        state = load_state()
        history = [image_id] + [h for h in state.history if h != image_id]
        return _write_state(state.model_copy(update={"history": history, "generated_image": image_id}), state)
