"""
Static content: the job board listings and the rows ``flask seed`` inserts.
"""

JOB_LISTINGS = [
    {
        "id": "1",
        "title": "Senior Frontend Developer",
        "company": "TechFlow Inc.",
        "location": "Remote (US)",
        "type": "Full-time",
        "remote": True,
        "url": "https://example.com/jobs/senior-frontend-developer",
        "postedAt": "2024-01-15",
    },
    {
        "id": "2",
        "title": "Product Manager",
        "company": "InnovateCorp",
        "location": "Remote (Global)",
        "type": "Full-time",
        "remote": True,
        "url": "https://example.com/jobs/product-manager",
        "postedAt": "2024-01-14",
    },
    {
        "id": "3",
        "title": "UX/UI Designer",
        "company": "DesignStudio",
        "location": "Remote (EU)",
        "type": "Contract",
        "remote": True,
        "url": "https://example.com/jobs/ux-ui-designer",
        "postedAt": "2024-01-13",
    },
    {
        "id": "4",
        "title": "DevOps Engineer",
        "company": "CloudTech Solutions",
        "location": "Remote (Americas)",
        "type": "Full-time",
        "remote": True,
        "url": "https://example.com/jobs/devops-engineer",
        "postedAt": "2024-01-12",
    },
    {
        "id": "5",
        "title": "Content Marketing Specialist",
        "company": "GrowthHackers",
        "location": "Remote (Worldwide)",
        "type": "Part-time",
        "remote": True,
        "url": "https://example.com/jobs/content-marketing-specialist",
        "postedAt": "2024-01-11",
    },
]
JOB_TYPES = ("Full-time", "Part-time", "Contract", "Freelance")

SAMPLE_AUTHOR = {
    "name": "Alex Johnson",
    "bio": (
        "Remote work consultant and productivity expert with 8+ years of "
        "experience helping teams transition to distributed work environments."
    ),
    "avatar": "/static/images/author-avatar.svg",
    "twitter": "https://twitter.com/alexjohnson",
    "linkedin": "https://linkedin.com/in/alexjohnson",
    "website": "https://alexjohnson.dev",
}

SAMPLE_POSTS = [
    {
        "title": "The Ultimate Guide to Remote Work Productivity",
        "slug": "ultimate-guide-remote-work-productivity",
        "excerpt": (
            "Discover proven strategies and tools to maximize your productivity "
            "while working from home. Learn how to create the perfect remote "
            "work environment."
        ),
        "content": """# The Ultimate Guide to Remote Work Productivity

Working from home has become the new normal for millions of professionals.
Remote work offers flexibility, but it also brings challenges that can hurt
your productivity if you leave them alone.

## Creating Your Ideal Workspace

### Designate a Dedicated Work Area

A spot used only for work draws a line between your professional and
personal life. A corner of the living room is fine if it is consistently
used for work.

### Invest in Ergonomic Equipment

- An ergonomic chair that supports good posture
- A desk at the proper height
- An external monitor to reduce eye strain

## Time Management Strategies

### The Pomodoro Technique

Work in focused 25-minute intervals followed by 5-minute breaks. After four
intervals, take a longer 15-30 minute break.

### Time Blocking

Schedule specific blocks for deep work, communication, meetings and
administrative tasks.

## Conclusion

Remote productivity is about working smarter, not longer. Be patient while
you build the habits that fit your situation.
""",
        "category": "Productivity",
        "tags": ["productivity", "remote work", "work from home", "time management"],
        "featured": True,
        "status": "published",
    },
    {
        "title": "Essential Tools for Remote Team Collaboration",
        "slug": "essential-tools-remote-team-collaboration",
        "excerpt": (
            "Explore the must-have digital tools that make remote team "
            "collaboration seamless and effective. From communication to "
            "project management."
        ),
        "content": """# Essential Tools for Remote Team Collaboration

Remote teams live and die by their tooling. Here is a short tour of what
every distributed team should consider.

## Communication

**Slack** and **Microsoft Teams** cover chat, calls and file sharing.
**Discord** is a surprisingly good fit for teams that like drop-in voice
channels.

## Project Management

**Asana**, **Trello** and **Monday.com** each take a different angle on
tracking who does what by when.

## Choosing the Right Tools

1. **Team size**: some tools scale better than others
2. **Budget**: per-seat pricing adds up
3. **Integration**: prefer tools that work well together
4. **Security**: make sure they meet your requirements

Start small, train the team, and review the stack every few months.
""",
        "category": "Tools & Software",
        "tags": ["tools", "software", "productivity", "remote work"],
        "featured": False,
        "status": "published",
    },
    {
        "title": "Building a Healthy Work-Life Balance at Home",
        "slug": "healthy-work-life-balance-at-home",
        "excerpt": (
            "When your office is also your home, boundaries blur. Practical "
            "rituals and habits that keep work from taking over your evenings."
        ),
        "content": """# Building a Healthy Work-Life Balance at Home

## Set Clear Boundaries

- Establish specific work hours and stick to them
- Create rituals that mark the start and the end of the workday
- Turn off work notifications outside of work hours

## Take Regular Breaks

Step away from the screen every hour, take a real lunch break, and get
outside when you can.

## Conclusion

Balance is not a one-off decision; it is a set of small habits repeated
every day.
""",
        "category": "Wellness",
        "tags": ["wellness", "remote work", "work-life balance"],
        "featured": True,
        "status": "published",
    },
]
