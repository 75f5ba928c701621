from datetime import time

import click

from app import create_app, db
from app.models import (
    ApiLog,
    Booking,
    Court,
    Equipment,
    EquipmentRequest,
    EquipmentRequestItem,
    Facility,
    LocationType,
    SportType,
    User,
    UserRole,
)
from app.services.facility_service import sync_courts

app = create_app()


@app.shell_context_processor
def make_shell_context():
    return {
        'db': db,
        'User': User,
        'Facility': Facility,
        'Court': Court,
        'Booking': Booking,
        'Equipment': Equipment,
        'EquipmentRequest': EquipmentRequest,
        'EquipmentRequestItem': EquipmentRequestItem,
        'ApiLog': ApiLog,
    }


@app.cli.command('seed_db')
@click.option('--password', default='changeme123', help='Password for the seeded accounts.')
def seed_db_command(password):
    """Add sample facilities, courts, equipment and accounts."""
    if Facility.query.first() is not None:
        click.echo('Database already has facilities, nothing to seed.')
        return

    # Basketball and volleyball share the same hall floor
    hall_basketball = Facility(
        name='Sports Hall - Basketball', sport_type=SportType.BASKETBALL, location='Sports Complex, Block A',
        location_type=LocationType.INDOOR, capacity=20, open_time=time(8, 0), close_time=time(22, 0),
        rules=['Non-marking shoes only', 'No food on court'],
        is_multi_sport=True, shared_sports=[SportType.VOLLEYBALL.value],
    )
    hall_volleyball = Facility(
        name='Sports Hall - Volleyball', sport_type=SportType.VOLLEYBALL, location='Sports Complex, Block A',
        location_type=LocationType.INDOOR, capacity=12, open_time=time(8, 0), close_time=time(22, 0),
        rules=['Non-marking shoes only'],
        is_multi_sport=True, shared_sports=[SportType.BASKETBALL.value],
    )
    badminton = Facility(
        name='Badminton Centre', sport_type=SportType.BADMINTON, location='Sports Complex, Block B',
        location_type=LocationType.INDOOR, capacity=4, open_time=time(7, 0), close_time=time(23, 0),
    )
    tennis = Facility(
        name='Tennis Courts', sport_type=SportType.TENNIS, location='Outdoor Field',
        location_type=LocationType.OUTDOOR, capacity=4,
    )
    db.session.add_all([hall_basketball, hall_volleyball, badminton, tennis])
    db.session.flush()

    for facility, courts in ((hall_basketball, 2), (hall_volleyball, 2), (badminton, 6), (tennis, 3)):
        sync_courts(facility, courts)

    db.session.add_all([
        Equipment(facility_id=hall_basketball.id, name='Basketball', qty_total=10, qty_available=10),
        Equipment(facility_id=hall_volleyball.id, name='Volleyball', qty_total=8, qty_available=8),
        Equipment(facility_id=badminton.id, name='Racket', qty_total=24, qty_available=24),
        Equipment(facility_id=badminton.id, name='Shuttlecock Tube', qty_total=12, qty_available=12),
        Equipment(facility_id=tennis.id, name='Tennis Racket', qty_total=8, qty_available=8),
    ])

    for name, email, role in (
        ('Admin', 'admin@courtbooking.local', UserRole.ADMIN),
        ('Front Desk', 'staff@courtbooking.local', UserRole.STAFF),
        ('Sample Player', 'player@courtbooking.local', UserRole.USER),
    ):
        if User.query.filter_by(email=email).first() is None:
            user = User(name=name, email=email, role=role)
            user.set_password(password)
            db.session.add(user)

    db.session.commit()
    click.echo('Database seeded with facilities, courts, equipment and sample accounts!')


if __name__ == '__main__':
    app.run()
