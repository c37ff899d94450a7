"""
Built-in sample journey: three contract-management micro jobs chained in
order, shared by four performers. Seeded with ``flask seed-sample-journey``.
"""

from journey_map.services.journey_types import (
    JobPerformer,
    JourneyConnection,
    MicroJob,
    Position,
)

SAMPLE_NAME = "Sample: Post-Sales Contract Journey"
SAMPLE_DESCRIPTION = "Three-step contract management journey used for demos."


def sample_job_performers() -> list[JobPerformer]:
    return [
        JobPerformer(id="jp1", name="Sales Rep", color="#3B82F6", group="Sales Team"),
        JobPerformer(id="jp2", name="Contract Manager", color="#10B981", group="Operations"),
        JobPerformer(id="jp3", name="Account Manager", color="#F59E0B", group="Customer Success"),
        JobPerformer(id="jp4", name="Finance Analyst", color="#8B5CF6", group="Finance"),
    ]


def sample_micro_jobs() -> list[MicroJob]:
    return [
        MicroJob(
            id="1",
            sequence=1,
            job_domain_stage="Post Sales Contract Management",
            main_job="Manage or Renew Contract Post-Sales",
            micro_job="Activate & Administer Contract",
            job_performers=["jp1", "jp2"],
            high_level_description="Initial contract setup and activation",
            detail_description=(
                "Complete setup of contract terms, activation of services, "
                "and initial administration tasks"
            ),
            product_team="Contract Management",
            position=Position(x=100, y=100),
        ),
        MicroJob(
            id="2",
            sequence=2,
            job_domain_stage="Post Sales Contract Management",
            main_job="Manage or Renew Contract Post-Sales",
            micro_job="Understand contract performance & obligations",
            job_performers=["jp1", "jp3"],
            high_level_description="Monitor and analyze contract performance",
            detail_description="Review contract metrics, obligations, and performance indicators",
            product_team="Analytics",
            position=Position(x=450, y=100),
        ),
        MicroJob(
            id="3",
            sequence=3,
            job_domain_stage="Performance Management",
            main_job="Analyze Sales Bookings",
            micro_job="Review contracts for revenue recognition",
            job_performers=["jp2", "jp4"],
            high_level_description="Ensure proper revenue recognition",
            detail_description=(
                "Review contracts to ensure compliance with revenue recognition standards"
            ),
            product_team="Finance",
            position=Position(x=800, y=100),
        ),
    ]


def sample_connections() -> list[JourneyConnection]:
    return [
        JourneyConnection(id="e1-2", source="1", target="2"),
        JourneyConnection(id="e2-3", source="2", target="3"),
    ]
