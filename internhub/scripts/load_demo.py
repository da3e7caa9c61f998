"""
Demo Scenario Loader

Seeds users, role profiles and positions for local demos.
Usage: python -m internhub.scripts.load_demo --scenario campus
"""
import asyncio
import argparse
from datetime import date, timedelta
from sqlalchemy import text

from internhub.database import AsyncSessionLocal, create_all
from internhub.models.user import Enterprise, Role, Student, Teacher, User
from internhub.services.application_service import get_application_service
from internhub.services.position_service import get_position_service


async def clear_demo_data():
    """Clear all existing data"""
    async with AsyncSessionLocal() as session:
        tables = [
            "notifications", "operation_logs", "internship_files", "internship_logs", "internships",
            "applications", "positions", "students", "teachers", "enterprises", "users",
        ]
        for table in tables:
            await session.execute(text(f"DELETE FROM {table}"))
        await session.commit()
    print("✓ Cleared existing data")


async def create_accounts():
    """
    Create one teacher, two enterprises and four students.

    Returns:
        Dict of role name to list of user ids
    """
    accounts = {"teacher": [], "enterprise": [], "student": []}

    async with AsyncSessionLocal() as session:
        teacher_user = User(username="t_wang", real_name="Wang Li", email="wang.li@campus.edu", role=Role.TEACHER)
        session.add(teacher_user)
        await session.flush()
        session.add(Teacher(user_id=teacher_user.id, teacher_number="T0001", department="Computer Science", title="Lecturer"))
        accounts["teacher"].append(teacher_user.id)

        for i, (company, industry) in enumerate([("Northwind Labs", "Software"), ("Bluefin Analytics", "Data")]):
            user = User(username=f"ent_{i + 1}", real_name=company, email=f"hr@{company.split()[0].lower()}.com", role=Role.ENTERPRISE)
            session.add(user)
            await session.flush()
            session.add(Enterprise(user_id=user.id, company_name=company, industry=industry))
            accounts["enterprise"].append(user.id)

        for i in range(4):
            user = User(username=f"stu_{i + 1}", real_name=f"Student {i + 1}", email=f"stu{i + 1}@campus.edu", role=Role.STUDENT)
            session.add(user)
            await session.flush()
            session.add(Student(user_id=user.id, student_number=f"2024{i + 1:04d}", major="Computer Science", grade=3))
            accounts["student"].append(user.id)

        await session.commit()

    print(f"  Created {sum(len(ids) for ids in accounts.values())} accounts")
    return accounts


async def load_campus_scenario():
    """
    Load Campus scenario.

    Scenario: two enterprises post three positions; nothing applied yet.
    """
    print("\nLoading Campus scenario...")
    accounts = await create_accounts()
    positions = get_position_service()
    today = date.today()

    await positions.create_position(
        accounts["enterprise"][0], "Backend Intern", "Build internal REST services",
        total_slots=3, start_date=today + timedelta(days=14), end_date=today + timedelta(days=104),
        requirements="Python, SQL",
    )
    await positions.create_position(
        accounts["enterprise"][0], "QA Intern", "Automate regression suites",
        total_slots=1, start_date=today + timedelta(days=14), end_date=today + timedelta(days=74),
    )
    await positions.create_position(
        accounts["enterprise"][1], "Data Analyst Intern", "Dashboards and reporting",
        total_slots=2, start_date=today + timedelta(days=30), end_date=today + timedelta(days=120),
    )
    print("  Created 3 open positions")
    return accounts


async def load_review_scenario():
    """
    Load Review scenario.

    Scenario: campus data plus three applications; one approved, one
    rejected, one pending for the teacher to review.
    """
    accounts = await load_campus_scenario()
    print("\nAdding applications...")
    applications = get_application_service()
    listing = await get_position_service().list_positions(limit=10)
    position_ids = sorted(position.id for position in listing["items"])

    submitted = []
    for student_user_id, position_id in zip(accounts["student"], position_ids):
        application = await applications.submit(
            student_user_id, position_id, "I am keen to learn on real projects.", "student@campus.edu"
        )
        submitted.append(application)

    teacher_user_id = accounts["teacher"][0]
    await applications.approve(submitted[0].id, teacher_user_id)
    await applications.reject(submitted[1].id, teacher_user_id, "Position requires prior testing experience")
    print("  1 approved, 1 rejected, 1 pending")
    return accounts


async def load_scenario(scenario_name: str):
    """
    Load a demo scenario.

    Args:
        scenario_name: Name of scenario to load
    """
    scenarios = {
        "campus": load_campus_scenario,
        "review": load_review_scenario,
    }

    if scenario_name not in scenarios:
        print(f"ERROR: Unknown scenario '{scenario_name}'")
        print(f"Available scenarios: {', '.join(scenarios.keys())}")
        return

    await create_all()
    await clear_demo_data()

    accounts = await scenarios[scenario_name]()

    tokens = [
        f"{role}{i + 1}token={role}:{user_id}"
        for role, user_ids in accounts.items()
        for i, user_id in enumerate(user_ids)
    ]
    print(f"\n✅ Scenario '{scenario_name}' loaded successfully!")
    print(f"Example API_TOKENS={','.join(tokens)}")


def main():
    """CLI entry point"""
    parser = argparse.ArgumentParser(description="Load demo scenarios")
    parser.add_argument(
        "--scenario",
        "-s",
        choices=["campus", "review"],
        default="campus",
        help="Scenario to load"
    )

    args = parser.parse_args()
    asyncio.run(load_scenario(args.scenario))


if __name__ == "__main__":
    main()
