"""one submission per student per assignment
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '0002_add_unique_submission'
down_revision = '0001_initial'
branch_labels = None
depends_on = None

CONSTRAINT = "uq_submission_assignment_student"


def _has_constraint():
    inspector = sa.inspect(op.get_bind())
    names = {uc["name"] for uc in inspector.get_unique_constraints("assignmentsubmission")}
    return CONSTRAINT in names


def upgrade():
    # databases created from current models already carry the constraint
    if _has_constraint():
        return
    with op.batch_alter_table("assignmentsubmission") as batch_op:
        batch_op.create_unique_constraint(CONSTRAINT, ["assignment_id", "student_id"])


def downgrade():
    if not _has_constraint():
        return
    with op.batch_alter_table("assignmentsubmission") as batch_op:
        batch_op.drop_constraint(CONSTRAINT, type_="unique")
