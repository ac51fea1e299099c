"""Write a small demo roster, club and weekly shift to the configured store."""

from datetime import time

from courtside.calendar_utils import Weekday
from courtside.models import Role, Shift, User
from courtside.recurrence import Recurrence
from courtside.repository import Repository

DEMO_USERS = [
    User(id="admin-1", name="Admin Principal", role=Role.ADMIN, phone="123"),
    User(id="coach-1", name="Treinador Pablo", role=Role.COACH, phone="456"),
    User(id="student-1", name="João Silva", role=Role.STUDENT, phone="789"),
    User(id="student-2", name="Maria Santos", role=Role.STUDENT, phone="321"),
]

DEMO_CLUB = "Padel Center"


def seed(repo: Repository) -> None:
    for user in DEMO_USERS:
        repo.save_user(user)
    if DEMO_CLUB not in repo.list_clubs():
        repo.add_club(DEMO_CLUB)
    repo.shifts.save(
        Shift(
            id="shift-demo",
            day_of_week=Weekday.TUESDAY,
            start_time=time(18, 30),
            coach_id="coach-1",
            duration_minutes=90,
            student_ids=("student-1", "student-2"),
            recurrence=Recurrence.WEEKLY,
            club_name=DEMO_CLUB,
        )
    )


def main() -> None:
    repo = Repository.from_firestore()
    seed(repo)
    print(f"Seeded {len(DEMO_USERS)} users, 1 club and 1 shift")


if __name__ == "__main__":  # pragma: no cover - script entrypoint
    main()
