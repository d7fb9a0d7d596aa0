"""
Atomic transaction handlers.

Handlers take an open session, lock the rows they depend on
(``SELECT ... FOR UPDATE``), commit on success and roll back on any failure,
logging every step with a trace_id.

- AppointmentTransaction: create, update and delete appointments
"""

from studio.transactions.appointment_transaction import AppointmentTransaction

__all__ = ["AppointmentTransaction"]
