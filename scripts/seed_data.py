#!/usr/bin/env python3
"""
Demo data seeding - creates an admin, a regular user, partners and solutions,
then approves them through the ticket workflow so that anonymous visitors see
a populated catalog.
"""

import argparse
import asyncio

from icp_platform.core.container import AppContainer
from icp_platform.core.schema import TICKETS, USERS, Principal

ADMIN = Principal(uid="seed-admin", role="ADMIN")
USER = Principal(uid="seed-user")

PARTNERS = [
    {
        "organizationName": "Rain Collective",
        "entityType": "NGO",
        "description": "Community rain water harvesting across rural districts",
        "address": {"city": "Nakuru", "country": "Kenya"},
        "websiteUrl": "https://rain.example.org",
    },
    {
        "organizationName": "Sunbeam Labs",
        "entityType": "Social Impact Entity",
        "description": "Solar lighting and clean cooking for off-grid homes",
        "address": {"country": "India"},
    },
]

SOLUTIONS = [
    {
        "name": "Ceramic Water Filter",
        "summary": "Low-cost household filter removing bacteria from drinking water",
        "detail": "Locally fired clay pots with colloidal silver coating",
        "domain": "Water",
        "benefit": "Fewer waterborne illnesses",
        "costAndEffort": "Low",
        "returnOnInvestment": "High",
        "partner": 0,
    },
    {
        "name": "Solar Study Lamp",
        "summary": "Rechargeable solar lamp so children can study after dark",
        "detail": "Charges in six hours of sunlight and lasts a full evening",
        "domain": "Energy",
        "benefit": "Longer study hours without kerosene",
        "costAndEffort": "Low",
        "returnOnInvestment": "Medium",
        "partner": 1,
    },
    {
        "name": "Mobile Health Clinic",
        "summary": "Monthly clinic visits to remote villages",
        "detail": "A staffed van with basic diagnostics and a pharmacy",
        "domain": "Health",
        "benefit": "Early diagnosis",
        "costAndEffort": "High",
        "returnOnInvestment": "Medium",
    },
]


async def seed(mature: bool) -> None:
    container = AppContainer(use_config_providers=False)
    store = container.store

    for principal, first, last in ((ADMIN, "Seed", "Admin"), (USER, "Demo", "User")):
        if await store.get(USERS, principal.uid) is None:
            await store.create(USERS, {
                "email": f"{principal.uid}@example.org", "firstName": first, "lastName": last,
                "role": principal.role, "language": "en", "bookmarks": [], "associatedPartners": [],
            }, doc_id=principal.uid)
    print("✓ Users ready")

    partner_ids = []
    for payload in PARTNERS:
        partner = await container.partners.create(ADMIN, payload)
        partner_ids.append(partner["id"])
        print(f"  + partner {partner['organizationName']} ({partner['id']})")

    for payload in SOLUTIONS:
        payload = dict(payload)
        partner_index = payload.pop("partner", None)
        if partner_index is not None:
            payload["providedByPartnerId"] = partner_ids[partner_index]
        solution = await container.solutions.create(ADMIN, payload)
        print(f"  + solution {solution['name']} ({solution['id']})")

    tickets = await store.list(TICKETS, {"status": "NEW", "createdByUserId": ADMIN.uid})
    for ticket in tickets:
        await container.workflow.change_status(ADMIN, ticket["id"], {"status": "RESOLVED", "comment": "Seeded"})
    print(f"✓ Resolved {len(tickets)} approval tickets")

    if mature:
        for solution_id in [t["solutionId"] for t in tickets if t.get("solutionId")]:
            await container.solutions.update(ADMIN, solution_id, {"status": "MATURE"})
        print("✓ Solutions promoted to MATURE")

    await container.users.request_association(USER, USER.uid, partner_ids[0])
    print("✓ Pending association request from demo user")

    container.dispose()


def main():
    parser = argparse.ArgumentParser(description="Seed ICP demo data")
    parser.add_argument(
        "--mature",
        action="store_true",
        help="Promote seeded solutions to MATURE so anonymous visitors can see them"
    )
    args = parser.parse_args()

    asyncio.run(seed(args.mature))
    print("Seeding complete!")


if __name__ == "__main__":
    main()
