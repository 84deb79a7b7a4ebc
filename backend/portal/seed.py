"""Sample postings for local environments (kept in sync with the seed migration)."""
from __future__ import annotations

SAMPLE_INTERNSHIPS = [
    {
        "company_name": "TechCorp Solutions",
        "position_title": "Frontend Developer Intern",
        "description": "Work on cutting-edge web applications using React and TypeScript. "
        "Collaborate with experienced developers on real-world projects.",
        "salary": "$800-1200/month",
        "duration": "3-6 months",
        "required_skills": ["JavaScript", "React", "TypeScript", "HTML/CSS"],
        "location": "Remote",
    },
    {
        "company_name": "DataStream Analytics",
        "position_title": "Data Science Intern",
        "description": "Analyze large datasets and build machine learning models. "
        "Gain hands-on experience with Python and data visualization tools.",
        "salary": "$1000-1500/month",
        "duration": "4-6 months",
        "required_skills": ["Python", "SQL", "Machine Learning", "Pandas"],
        "location": "Remote",
    },
    {
        "company_name": "CloudNine Systems",
        "position_title": "DevOps Engineer Intern",
        "description": "Learn cloud infrastructure management and CI/CD pipelines. "
        "Work with AWS, Docker, and Kubernetes.",
        "salary": "$900-1400/month",
        "duration": "3-5 months",
        "required_skills": ["AWS", "Docker", "Linux", "Git"],
        "location": "Remote",
    },
    {
        "company_name": "MobileFirst Apps",
        "position_title": "Mobile Developer Intern",
        "description": "Develop cross-platform mobile applications using React Native. "
        "Build features for iOS and Android platforms.",
        "salary": "$850-1300/month",
        "duration": "3-6 months",
        "required_skills": ["React Native", "JavaScript", "Mobile Development", "API Integration"],
        "location": "Remote",
    },
]


def seed_sample_internships(repo) -> int:
    """Load SAMPLE_INTERNSHIPS into a repo that supports privileged seeding."""
    repo.seed_internships(SAMPLE_INTERNSHIPS)
    return len(SAMPLE_INTERNSHIPS)
