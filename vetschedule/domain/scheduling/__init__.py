"""
Scheduling domain - opening hours, slot availability and appointment booking.

Structure:
```
domain/scheduling/
├── time_calculator.py       # HH:MM <-> minutes, weekday, closure dates
├── slot_generator.py        # Templates -> ordered slots (pure)
├── schemas.py               # Request/response models, status and type enums
├── lifecycle.py             # Status transitions and timestamps
├── repository.py            # Database queries and per-slot capacity counters
├── allocator.py             # Atomic booking, rescheduling and release
├── availability_service.py  # Point-in-time availability snapshot
├── service.py               # Appointment use cases and access rules
├── template_service.py      # Time templates and closures
├── router.py                # /appointments endpoints
└── template_router.py       # /appointments/time-slots, /appointments/holidays
```

Booking never trusts the availability snapshot: the allocator re-derives the
slot and takes capacity in the same transaction that writes the appointment.
"""
