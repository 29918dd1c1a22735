"""Booking repository - Database operations for bookings and video rooms"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import Booking, VideoRoom


class BookingRepository:
    """Repository for booking database operations"""

    @staticmethod
    def get_booking(db: Session, booking_id: str) -> Optional[Booking]:
        return db.query(Booking).filter(Booking.id == booking_id).first()

    @staticmethod
    def get_by_idempotency_key(db: Session, key: str) -> Optional[Booking]:
        return db.query(Booking).filter(Booking.idempotency_key == key).first()

    @staticmethod
    def create_booking(db: Session, **booking_data) -> Booking:
        booking = Booking(**booking_data)
        db.add(booking)
        db.commit()
        db.refresh(booking)
        return booking

    @staticmethod
    def set_status(db: Session, booking: Booking, status: str, **updates) -> Booking:
        booking.status = status
        for key, value in updates.items():
            setattr(booking, key, value)
        db.commit()
        db.refresh(booking)
        return booking

    @staticmethod
    def get_room(db: Session, room_id: str) -> Optional[VideoRoom]:
        return db.query(VideoRoom).filter(VideoRoom.id == room_id).first()

    @staticmethod
    def get_room_by_key(db: Session, key: str) -> Optional[VideoRoom]:
        return db.query(VideoRoom).filter(VideoRoom.idempotency_key == key).first()

    @staticmethod
    def create_room(db: Session, **room_data) -> VideoRoom:
        room = VideoRoom(**room_data)
        db.add(room)
        db.commit()
        db.refresh(room)
        return room

    @staticmethod
    def update_room(db: Session, room: VideoRoom, **updates) -> VideoRoom:
        for key, value in updates.items():
            setattr(room, key, value)
        db.commit()
        db.refresh(room)
        return room

    @staticmethod
    def cancel_room(db: Session, room: VideoRoom) -> None:
        room.status = "cancelled"
        db.commit()
