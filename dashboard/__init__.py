"""View-model layer of the admissions dashboard.

Nothing here renders anything. Each module holds the state a screen reads
(applicant tables, program filters, editable application sections, review
decisions, course assignment) and the transitions a screen triggers.
"""
