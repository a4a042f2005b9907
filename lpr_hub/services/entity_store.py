# lpr_hub/services/entity_store.py
"""
Entity store — the only code that touches the sites/cameras/events tables.

Every public method runs in its own transaction. Mutations are serialised on
a process-wide lock (SQLite has a single writer anyway) and publish their
change topic only after the commit succeeded. Methods are blocking; async
callers run them through starlette's threadpool.

Error translation:
  IntegrityError        → ConstraintViolation
  other SQLAlchemyError → StorageError
Both after a full rollback, so no caller ever sees a partial multi-row write.
"""

import threading
from contextlib import contextmanager, nullcontext
from datetime import datetime
from typing import Optional
from sqlalchemy import select, update, delete, func, distinct
from sqlalchemy.dialects import sqlite
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from lpr_hub.errors import LprHubError, ValidationError, NotFound, ConstraintViolation, StorageError
from lpr_hub.models.site import Site
from lpr_hub.models.camera import Camera, CameraStatus
from lpr_hub.models.event import Event
from lpr_hub.services.change_notifier import ChangeNotifier, SITE_UPDATE, CAMERA_UPDATE, EVENT_UPDATE
from lpr_hub.services.event_parser import DetectionEvent
from lpr_hub.utils.logger import get_logger

logger = get_logger(__name__)

CAMERA_EDITABLE_FIELDS = ("name", "description", "site_id", "status", "mac_address")


class EntityStore:
    def __init__(self, session_factory: sessionmaker, notifier: Optional[ChangeNotifier] = None):
        self._session_factory = session_factory
        self._notifier = notifier
        self._write_lock = threading.Lock()

    # ── Transaction plumbing ─────────────────────────────────────────────────
    @contextmanager
    def _transaction(self, write: bool = True):
        with self._write_lock if write else nullcontext():
            session: Session = self._session_factory()
            try:
                yield session
                session.commit()
            except LprHubError:
                session.rollback()
                raise
            except IntegrityError as e:
                session.rollback()
                logger.warning(f"Constraint violation: {e.orig}")
                raise ConstraintViolation(str(e.orig)) from e
            except SQLAlchemyError as e:
                session.rollback()
                logger.error(f"Storage failure, transaction rolled back: {e}", exc_info=True)
                raise StorageError("Database operation failed") from e
            finally:
                session.close()

    def _publish(self, *topics: str):
        if self._notifier is None:
            return
        for topic in topics:
            self._notifier.publish(topic)

    # ── Cameras ──────────────────────────────────────────────────────────────
    def _upsert_camera(self, session: Session, channel_id: str, mac_address: Optional[str],
                       seen_at: Optional[datetime] = None) -> bool:
        """Insert a minimal camera row if channel_id is new. Returns True if a row was created."""
        now = datetime.utcnow()
        stmt = (
            sqlite.insert(Camera)
            .values(channel_id=channel_id, mac_address=mac_address,
                    status=CameraStatus.ACTIVE.value, last_seen=seen_at, created_at=now)
            .on_conflict_do_nothing(index_elements=[Camera.channel_id])
            .returning(Camera.id)
        )
        created = session.execute(stmt).scalar_one_or_none() is not None
        if not created and seen_at is not None:
            # Only last_seen moves; name/description/site stay as the operator left them.
            session.execute(
                update(Camera).where(Camera.channel_id == channel_id).values(last_seen=seen_at)
            )
        return created

    def upsert_camera(self, channel_id: str, mac_address: Optional[str] = None) -> bool:
        if not channel_id:
            raise ValidationError("channelID is required")
        with self._transaction() as session:
            created = self._upsert_camera(session, channel_id, mac_address)
        if created:
            logger.info(f"Auto-registered camera {channel_id}")
            self._publish(CAMERA_UPDATE)
        return created

    def add_camera(self, channel_id: str, mac_address: Optional[str] = None, name: Optional[str] = None,
                   description: Optional[str] = None, site_id: Optional[int] = None) -> Camera:
        if not channel_id:
            raise ValidationError("channelID is required")
        with self._transaction() as session:
            camera = Camera(channel_id=channel_id, mac_address=mac_address, name=name,
                            description=description, site_id=site_id,
                            status=CameraStatus.ACTIVE.value, created_at=datetime.utcnow())
            session.add(camera)
            session.flush()
        self._publish(CAMERA_UPDATE)
        return camera

    def update_camera(self, camera_id: int, **fields) -> Camera:
        unknown = set(fields) - set(CAMERA_EDITABLE_FIELDS)
        if unknown:
            raise ValidationError(f"Camera fields not editable: {', '.join(sorted(unknown))}")
        if "status" in fields:
            try:
                fields["status"] = CameraStatus(fields["status"]).value
            except ValueError:
                raise ValidationError(f"Invalid camera status: {fields['status']!r}")

        with self._transaction() as session:
            if fields:
                result = session.execute(update(Camera).where(Camera.id == camera_id).values(**fields))
                if result.rowcount == 0:
                    raise NotFound(f"Camera {camera_id} not found")
            camera = session.get(Camera, camera_id)
            if camera is None:
                raise NotFound(f"Camera {camera_id} not found")
        self._publish(CAMERA_UPDATE)
        return camera

    def delete_camera(self, camera_id: int) -> int:
        with self._transaction() as session:
            rows = session.execute(delete(Camera).where(Camera.id == camera_id)).rowcount
            if rows == 0:
                raise NotFound(f"Camera {camera_id} not found")
        self._publish(CAMERA_UPDATE)
        return rows

    def get_camera(self, camera_id: int) -> Camera:
        with self._transaction(write=False) as session:
            camera = session.get(Camera, camera_id)
        if camera is None:
            raise NotFound(f"Camera {camera_id} not found")
        return camera

    def get_camera_by_channel(self, channel_id: str) -> Camera:
        with self._transaction(write=False) as session:
            camera = session.scalars(select(Camera).where(Camera.channel_id == channel_id)).first()
        if camera is None:
            raise NotFound(f"Camera {channel_id} not found")
        return camera

    def list_cameras(self, site_id: Optional[int] = None) -> list[Camera]:
        with self._transaction(write=False) as session:
            q = select(Camera)
            if site_id is not None:
                q = q.where(Camera.site_id == site_id)
            return list(session.scalars(q.order_by(Camera.name, Camera.channel_id)))

    # ── Events ───────────────────────────────────────────────────────────────
    def insert_event(self, event: DetectionEvent) -> int:
        """
        Register the camera if unseen and insert the event in one transaction.
        The event inherits the camera's current site assignment.
        """
        if not event.license_plate:
            raise ValidationError("licensePlate is required")
        if event.date_time is None:
            raise ValidationError("dateTime is required")
        if not event.channel_id:
            raise ValidationError("channelID is required")

        with self._transaction() as session:
            now = datetime.utcnow()
            camera_created = self._upsert_camera(session, event.channel_id, event.mac_address, seen_at=now)
            site_id = session.execute(
                select(Camera.site_id).where(Camera.channel_id == event.channel_id)
            ).scalar_one()
            row = Event(
                channel_id=event.channel_id,
                date_time=event.date_time,
                event_type=event.event_type,
                country=event.country,
                license_plate=event.license_plate,
                lane=event.lane,
                direction=event.direction,
                confidence_level=event.confidence_level,
                mac_address=event.mac_address,
                license_plate_image=event.images.get("license_plate"),
                vehicle_image=event.images.get("vehicle"),
                detection_image=event.images.get("detection"),
                site_id=site_id,
                created_at=now,
            )
            session.add(row)
            session.flush()
            event_id = row.id

        if camera_created:
            logger.info(f"Auto-registered camera {event.channel_id}")
            self._publish(CAMERA_UPDATE)
        self._publish(EVENT_UPDATE)
        return event_id

    def list_events(self, license_plate: Optional[str] = None, date_from: Optional[datetime] = None,
                    date_to: Optional[datetime] = None, site_id: Optional[int] = None,
                    limit: int = 100) -> list[Event]:
        with self._transaction(write=False) as session:
            q = select(Event)
            if license_plate:
                q = q.where(Event.license_plate.contains(license_plate, autoescape=True))
            if date_from is not None:
                q = q.where(Event.date_time >= date_from)
            if date_to is not None:
                q = q.where(Event.date_time <= date_to)
            if site_id is not None:
                q = q.where(Event.site_id == site_id)
            q = q.order_by(Event.date_time.desc(), Event.id.desc())
            if limit:
                q = q.limit(limit)
            return list(session.scalars(q))

    # ── Sites ────────────────────────────────────────────────────────────────
    def create_or_get_site(self, name: str, description: Optional[str] = None) -> int:
        """
        Idempotent on name. A single INSERT … ON CONFLICT DO UPDATE … RETURNING
        yields the id whether the row is new or already there, so concurrent
        callers cannot race between an insert and a lookup. An existing row's
        description is left alone.
        """
        name = (name or "").strip()
        if not name:
            raise ValidationError("Site name is required")
        with self._transaction() as session:
            ins = sqlite.insert(Site).values(
                name=name, description=description, created_at=datetime.utcnow()
            )
            stmt = ins.on_conflict_do_update(
                index_elements=[Site.name], set_={"name": ins.excluded.name}
            ).returning(Site.id)
            site_id = session.execute(stmt).scalar_one()
        self._publish(SITE_UPDATE)
        return site_id

    def get_site(self, site_id: int) -> Site:
        with self._transaction(write=False) as session:
            site = session.get(Site, site_id)
        if site is None:
            raise NotFound(f"Site {site_id} not found")
        return site

    def update_site(self, site_id: int, name: str, description: Optional[str] = None) -> int:
        name = (name or "").strip()
        if not name:
            raise ValidationError("Site name is required")
        with self._transaction() as session:
            rows = session.execute(
                update(Site).where(Site.id == site_id).values(name=name, description=description)
            ).rowcount
            if rows == 0:
                raise NotFound(f"Site {site_id} not found")
        self._publish(SITE_UPDATE)
        return rows

    def delete_site(self, site_id: int) -> int:
        """Cascade: events, then cameras, then the site row. All or nothing."""
        with self._transaction() as session:
            events = session.execute(delete(Event).where(Event.site_id == site_id)).rowcount
            cameras = session.execute(delete(Camera).where(Camera.site_id == site_id)).rowcount
            rows = session.execute(delete(Site).where(Site.id == site_id)).rowcount
            if rows == 0:
                raise NotFound(f"Site {site_id} not found")
        logger.info(f"Deleted site {site_id} with {cameras} camera(s) and {events} event(s)")
        self._publish(SITE_UPDATE, CAMERA_UPDATE, EVENT_UPDATE)
        return rows

    # ── Aggregates ───────────────────────────────────────────────────────────
    @staticmethod
    def _event_stats(session: Session) -> dict:
        total, unique_vehicles, active_channels, last_detection = session.execute(
            select(
                func.count(Event.id),
                func.count(distinct(Event.license_plate)),
                func.count(distinct(Event.channel_id)),
                func.max(Event.date_time),
            )
        ).one()
        total_sites = session.execute(select(func.count(Site.id))).scalar_one()
        return {
            "total_events": total,
            "unique_vehicles": unique_vehicles,
            "active_channels": active_channels,
            "total_sites": total_sites,
            "last_detection": last_detection,
        }

    @staticmethod
    def _site_stats(session: Session) -> list[dict]:
        last_vehicle_image = (
            select(Event.vehicle_image)
            .where(Event.site_id == Site.id)
            .order_by(Event.date_time.desc(), Event.id.desc())
            .limit(1)
            .correlate(Site)
            .scalar_subquery()
        )
        camera_count = (
            select(func.count(Camera.id))
            .where(Camera.site_id == Site.id)
            .correlate(Site)
            .scalar_subquery()
        )
        q = (
            select(
                Site.id,
                Site.name,
                Site.description,
                camera_count.label("camera_count"),
                func.count(Event.id).label("event_count"),
                func.max(Event.date_time).label("last_detection"),
                last_vehicle_image.label("last_vehicle_image"),
            )
            .outerjoin(Event, Event.site_id == Site.id)
            .group_by(Site.id, Site.name, Site.description)
            .order_by(Site.name)
        )
        return [dict(row._mapping) for row in session.execute(q)]

    def get_event_stats(self) -> dict:
        with self._transaction(write=False) as session:
            return self._event_stats(session)

    def get_site_stats(self) -> list[dict]:
        with self._transaction(write=False) as session:
            return self._site_stats(session)

    def get_dashboard_snapshot(self) -> dict:
        """Event and site aggregates read in one transaction, so they agree with each other."""
        with self._transaction(write=False) as session:
            return {"stats": self._event_stats(session), "sites": self._site_stats(session)}
