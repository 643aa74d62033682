"""initial registry tables

Revision ID: 0001
Revises: 
Create Date: 2025-10-01

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '0001'
down_revision = None
branch_labels = None
depends_on = None

DAYS = ('saturday', 'sunday', 'monday', 'tuesday', 'wednesday', 'thursday')


def _id():
    return sa.Column('id', sa.String(36), primary_key=True)


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.current_timestamp()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.current_timestamp()),
    ]


def upgrade():
    bind = op.get_bind()
    dialect = bind.dialect.name

    op.create_table('departments',
        _id(),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('code', sa.String(50), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )
    op.create_index('ix_departments_code', 'departments', ['code'], unique=True)

    op.create_table('subjects',
        _id(),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('code', sa.String(50), nullable=False),
        sa.Column('units', sa.Integer(), nullable=False),
        sa.Column('curriculum_semester', sa.Integer(), nullable=False),
        *_timestamps(),
        sa.CheckConstraint('units > 0', name='ck_subjects_units'),
        sa.CheckConstraint('curriculum_semester BETWEEN 1 AND 8', name='ck_subjects_curriculum_semester'),
    )
    op.create_index('ix_subjects_code', 'subjects', ['code'], unique=True)

    op.create_table('department_subjects',
        sa.Column('department_id', sa.String(36), sa.ForeignKey('departments.id', ondelete='RESTRICT'), primary_key=True),
        sa.Column('subject_id', sa.String(36), sa.ForeignKey('subjects.id', ondelete='CASCADE'), primary_key=True),
    )
    op.create_index('ix_department_subjects_subject', 'department_subjects', ['subject_id'])

    op.create_table('terms',
        _id(),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_archived', sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
        sa.CheckConstraint('start_date <= end_date', name='ck_terms_date_order'),
    )
    op.create_index('ix_terms_dates', 'terms', ['start_date', 'end_date'])
    # не больше одного активного семестра
    op.create_index('ix_terms_single_active', 'terms', ['is_active'], unique=True,
                    sqlite_where=sa.text('is_active = 1'), postgresql_where=sa.text('is_active'))

    op.create_table('students',
        _id(),
        sa.Column('registration_id', sa.String(64), nullable=False),
        sa.Column('full_name', sa.String(255), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('department_id', sa.String(36), sa.ForeignKey('departments.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('mother_name', sa.String(255), nullable=False),
        sa.Column('phone', sa.String(64), nullable=False),
        sa.Column('password_hash', sa.String(255), nullable=False),
        sa.Column('study_semesters_count', sa.Integer(), nullable=False, server_default='0'),
        *_timestamps(),
        sa.CheckConstraint('study_semesters_count >= 0', name='ck_students_semesters_count'),
    )
    op.create_index('ix_students_registration_id', 'students', ['registration_id'], unique=True)
    op.create_index('ix_students_email', 'students', ['email'], unique=True)
    op.create_index('ix_students_department_id', 'students', ['department_id'])

    op.create_table('sections',
        _id(),
        sa.Column('term_id', sa.String(36), sa.ForeignKey('terms.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(100), nullable=False),
        sa.UniqueConstraint('term_id', 'name', name='uq_sections_term_name'),
    )

    op.create_table('registrations',
        _id(),
        sa.Column('term_id', sa.String(36), sa.ForeignKey('terms.id', ondelete='CASCADE'), nullable=False),
        sa.Column('student_id', sa.String(36), sa.ForeignKey('students.id', ondelete='CASCADE'), nullable=False),
        sa.Column('section_id', sa.String(36), sa.ForeignKey('sections.id', ondelete='SET NULL'), nullable=True),
        sa.Column('registered_at', sa.DateTime(), nullable=False, server_default=sa.func.current_timestamp()),
        sa.UniqueConstraint('term_id', 'student_id', name='uq_registrations_term_student'),
    )
    op.create_index('ix_registrations_term_id', 'registrations', ['term_id'])
    op.create_index('ix_registrations_student_id', 'registrations', ['student_id'])

    op.create_table('term_subjects',
        _id(),
        sa.Column('term_id', sa.String(36), sa.ForeignKey('terms.id', ondelete='CASCADE'), nullable=False),
        sa.Column('subject_id', sa.String(36), sa.ForeignKey('subjects.id', ondelete='CASCADE'), nullable=False),
        sa.UniqueConstraint('term_id', 'subject_id', name='uq_term_subjects_term_subject'),
    )
    op.create_index('ix_term_subjects_term_id', 'term_subjects', ['term_id'])

    op.create_table('student_subjects',
        _id(),
        sa.Column('term_id', sa.String(36), sa.ForeignKey('terms.id', ondelete='CASCADE'), nullable=False),
        sa.Column('student_id', sa.String(36), sa.ForeignKey('students.id', ondelete='CASCADE'), nullable=False),
        sa.Column('subject_id', sa.String(36), sa.ForeignKey('subjects.id', ondelete='CASCADE'), nullable=False),
        sa.Column('grade', sa.Float(), nullable=True),
        sa.UniqueConstraint('term_id', 'student_id', 'subject_id', name='uq_student_subjects_tuple'),
        sa.CheckConstraint('grade IS NULL OR (grade >= 0 AND grade <= 100)', name='ck_student_subjects_grade'),
    )
    op.create_index('ix_student_subjects_student', 'student_subjects', ['student_id'])

    op.create_table('periods',
        _id(),
        sa.Column('label', sa.String(100), nullable=False),
        sa.Column('start_time', sa.Time(), nullable=False),
        sa.Column('end_time', sa.Time(), nullable=False),
        sa.Column('sort_order', sa.Integer(), nullable=False),
        sa.UniqueConstraint('sort_order', name='uq_periods_sort_order'),
    )

    op.create_table('timetable_entries',
        _id(),
        sa.Column('term_id', sa.String(36), sa.ForeignKey('terms.id', ondelete='CASCADE'), nullable=False),
        sa.Column('day_of_week', sa.Enum(*DAYS, name='day_of_week', native_enum=False, create_constraint=True),
                  nullable=False),
        sa.Column('period_id', sa.String(36), sa.ForeignKey('periods.id', ondelete='CASCADE'), nullable=False),
        sa.Column('subject_id', sa.String(36), sa.ForeignKey('subjects.id', ondelete='CASCADE'), nullable=False),
        sa.Column('room_text', sa.String(255), nullable=True),
        sa.Column('lecturer_text', sa.String(255), nullable=True),
        sa.UniqueConstraint('term_id', 'day_of_week', 'period_id', 'subject_id', name='uq_timetable_slot'),
    )
    op.create_index('ix_timetable_term_day_period', 'timetable_entries', ['term_id', 'day_of_week', 'period_id'])

    if dialect == "sqlite":
        # пересечение дат семестров: последний рубеж на уровне БД
        op.execute("""
            CREATE TRIGGER IF NOT EXISTS trg_terms_no_overlap_insert
            BEFORE INSERT ON terms
            WHEN EXISTS (
                SELECT 1 FROM terms t
                WHERE date(t.start_date) <= date(NEW.end_date)
                  AND date(t.end_date) >= date(NEW.start_date)
            )
            BEGIN
                SELECT RAISE(ABORT, 'TERM_DATES_OVERLAP');
            END;
        """)
        op.execute("""
            CREATE TRIGGER IF NOT EXISTS trg_terms_no_overlap_update
            BEFORE UPDATE OF start_date, end_date ON terms
            WHEN EXISTS (
                SELECT 1 FROM terms t
                WHERE t.id != NEW.id
                  AND date(t.start_date) <= date(NEW.end_date)
                  AND date(t.end_date) >= date(NEW.start_date)
            )
            BEGIN
                SELECT RAISE(ABORT, 'TERM_DATES_OVERLAP');
            END;
        """)


def downgrade():
    bind = op.get_bind()
    if bind.dialect.name == "sqlite":
        op.execute("DROP TRIGGER IF EXISTS trg_terms_no_overlap_update")
        op.execute("DROP TRIGGER IF EXISTS trg_terms_no_overlap_insert")
    for table in ('timetable_entries', 'periods', 'student_subjects', 'term_subjects', 'registrations',
                  'sections', 'students', 'terms', 'department_subjects', 'subjects', 'departments'):
        op.drop_table(table)
