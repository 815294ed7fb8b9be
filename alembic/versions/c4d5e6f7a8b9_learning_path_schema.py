"""learning path schema: zones, topics, lessons, practice attempts, lesson progress

Revision ID: c4d5e6f7a8b9
Revises:
Create Date: 2026-10-18 09:00:00.000000

"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = 'c4d5e6f7a8b9'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


subscription_type = postgresql.ENUM('FREE', 'PLUS', 'UNLIMITED', name='subscription_type', create_type=False)
lesson_status = postgresql.ENUM('draft', 'published', name='lesson_status', create_type=False)
practice_result_status = postgresql.ENUM('in_progress', 'completed', name='practice_result_status', create_type=False)
lesson_progress_status = postgresql.ENUM(
    'not_started', 'in_progress', 'passed', name='lesson_progress_status', create_type=False
)

# Single statement so concurrent grants cannot lose an increment.
AWARD_USER_REWARDS = """
CREATE OR REPLACE FUNCTION award_user_rewards(p_user_id uuid, p_coins integer, p_xp integer)
RETURNS void
LANGUAGE sql
SECURITY DEFINER
AS $$
    UPDATE profiles
       SET coins = coins + GREATEST(p_coins, 0),
           xp = xp + GREATEST(p_xp, 0),
           updated_at = now()
     WHERE id = p_user_id;
$$;
"""


def upgrade() -> None:
    bind = op.get_bind()
    for enum_type in (subscription_type, lesson_status, practice_result_status, lesson_progress_status):
        enum_type.create(bind, checkfirst=True)

    op.create_table(
        'profiles',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('full_name', sa.String(length=255), nullable=True),
        sa.Column('avatar_url', sa.String(length=500), nullable=True),
        sa.Column('subscription_type', subscription_type, server_default='FREE', nullable=False),
        sa.Column('coins', sa.Integer(), server_default='0', nullable=False),
        sa.Column('xp', sa.Integer(), server_default='0', nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.CheckConstraint('coins >= 0', name='check_profiles_coins_non_negative'),
        sa.CheckConstraint('xp >= 0', name='check_profiles_xp_non_negative'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_profiles_email'), 'profiles', ['email'], unique=False)

    op.create_table(
        'zones',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('level', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_zones_level'), 'zones', ['level'], unique=True)

    op.create_table(
        'topics',
        sa.Column('topic_id', sa.Integer(), nullable=False),
        sa.Column('zone_id', sa.Integer(), nullable=False),
        sa.Column('slug', sa.String(length=255), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('sort_order', sa.Integer(), server_default='1', nullable=False),
        sa.ForeignKeyConstraint(['zone_id'], ['zones.id']),
        sa.PrimaryKeyConstraint('topic_id'),
    )
    op.create_index(op.f('ix_topics_zone_id'), 'topics', ['zone_id'], unique=False)
    op.create_index(op.f('ix_topics_slug'), 'topics', ['slug'], unique=True)

    op.create_table(
        'lessons',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('topic_id', sa.Integer(), nullable=False),
        sa.Column('slug', sa.String(length=255), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('sort_order', sa.Integer(), nullable=False),
        sa.Column('status', lesson_status, nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['topic_id'], ['topics.topic_id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('topic_id', 'sort_order', name='uq_lessons_topic_sort_order'),
        sa.UniqueConstraint('topic_id', 'slug', name='uq_lessons_topic_slug'),
    )
    op.create_index(op.f('ix_lessons_topic_id'), 'lessons', ['topic_id'], unique=False)

    op.create_table(
        'practice_sets',
        sa.Column('id', postgresql.UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('lesson_id', sa.Integer(), nullable=True),
        sa.Column('topic_id', sa.Integer(), nullable=True),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('coin_reward', sa.Integer(), server_default='0', nullable=False),
        sa.Column('xp_reward', sa.Integer(), server_default='0', nullable=False),
        sa.Column('pass_threshold', sa.Float(), nullable=True),
        sa.Column('is_active', sa.Boolean(), server_default='true', nullable=False),
        sa.Column('status', sa.String(length=20), server_default='ACTIVE', nullable=False),
        sa.Column('sequence_order', sa.Integer(), server_default='1', nullable=False),
        sa.ForeignKeyConstraint(['lesson_id'], ['lessons.id']),
        sa.ForeignKeyConstraint(['topic_id'], ['topics.topic_id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_practice_sets_lesson_id'), 'practice_sets', ['lesson_id'], unique=False)
    op.create_index(op.f('ix_practice_sets_topic_id'), 'practice_sets', ['topic_id'], unique=False)

    op.create_table(
        'practice_results',
        sa.Column('id', postgresql.UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('practice_set_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('practice_date', sa.Date(), nullable=False),
        sa.Column('status', practice_result_status, server_default='in_progress', nullable=False),
        sa.Column('attempt_no', sa.Integer(), server_default='1', nullable=False),
        sa.Column('score_percent', sa.Float(), server_default='0', nullable=False),
        sa.Column('total_correct', sa.Integer(), server_default='0', nullable=False),
        sa.Column('total_incorrect', sa.Integer(), server_default='0', nullable=False),
        sa.Column('total_skipped', sa.Integer(), server_default='0', nullable=False),
        sa.Column('time_spent_seconds', sa.Integer(), server_default='0', nullable=False),
        sa.Column('passed', sa.Boolean(), server_default='false', nullable=False),
        sa.Column('is_first_pass', sa.Boolean(), server_default='false', nullable=False),
        sa.Column('coins_earned', sa.Integer(), server_default='0', nullable=False),
        sa.Column('xp_earned', sa.Integer(), server_default='0', nullable=False),
        sa.Column('weak_question_types', postgresql.JSONB(), nullable=True),
        sa.Column('pass_criteria', postgresql.JSONB(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.CheckConstraint('score_percent >= 0 AND score_percent <= 100', name='check_practice_results_score_range'),
        sa.ForeignKeyConstraint(['user_id'], ['profiles.id']),
        sa.ForeignKeyConstraint(['practice_set_id'], ['practice_sets.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_practice_results_user_id'), 'practice_results', ['user_id'], unique=False)
    op.create_index(op.f('ix_practice_results_practice_set_id'), 'practice_results', ['practice_set_id'], unique=False)
    op.create_index(op.f('ix_practice_results_status'), 'practice_results', ['status'], unique=False)
    # At most one first-pass row per user and practice set.
    op.create_index(
        'uq_practice_results_first_pass',
        'practice_results',
        ['user_id', 'practice_set_id'],
        unique=True,
        postgresql_where=sa.text('is_first_pass'),
    )

    op.create_table(
        'practice_result_details',
        sa.Column('id', postgresql.UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('practice_result_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('question_id', sa.Integer(), nullable=True),
        sa.Column('is_correct', sa.Boolean(), server_default='false', nullable=False),
        sa.Column('time_spent_ms', sa.Integer(), server_default='0', nullable=False),
        sa.Column('answer_data', postgresql.JSONB(), nullable=True),
        sa.Column('status', sa.String(length=20), server_default='answered', nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['practice_result_id'], ['practice_results.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(
        op.f('ix_practice_result_details_practice_result_id'),
        'practice_result_details',
        ['practice_result_id'],
        unique=False,
    )

    op.create_table(
        'user_lesson_progress',
        sa.Column('id', postgresql.UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('lesson_id', sa.Integer(), nullable=False),
        sa.Column('topic_id', sa.Integer(), nullable=False),
        sa.Column('best_score_percent', sa.Float(), server_default='0', nullable=False),
        sa.Column('total_attempts', sa.Integer(), server_default='0', nullable=False),
        sa.Column('pass_threshold', sa.Float(), nullable=True),
        sa.Column('status', lesson_progress_status, server_default='not_started', nullable=False),
        sa.Column('first_attempted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('last_attempted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('passed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['profiles.id']),
        sa.ForeignKeyConstraint(['lesson_id'], ['lessons.id']),
        sa.ForeignKeyConstraint(['topic_id'], ['topics.topic_id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'lesson_id', name='uq_user_lesson_progress_user_lesson'),
    )
    op.create_index(op.f('ix_user_lesson_progress_user_id'), 'user_lesson_progress', ['user_id'], unique=False)
    op.create_index(op.f('ix_user_lesson_progress_lesson_id'), 'user_lesson_progress', ['lesson_id'], unique=False)
    op.create_index(op.f('ix_user_lesson_progress_topic_id'), 'user_lesson_progress', ['topic_id'], unique=False)

    op.execute(AWARD_USER_REWARDS)


def downgrade() -> None:
    op.execute("DROP FUNCTION IF EXISTS award_user_rewards(uuid, integer, integer)")
    op.drop_table('user_lesson_progress')
    op.drop_table('practice_result_details')
    op.drop_index('uq_practice_results_first_pass', table_name='practice_results')
    op.drop_table('practice_results')
    op.drop_table('practice_sets')
    op.drop_table('lessons')
    op.drop_table('topics')
    op.drop_table('zones')
    op.drop_table('profiles')
    bind = op.get_bind()
    for enum_type in (lesson_progress_status, practice_result_status, lesson_status, subscription_type):
        enum_type.drop(bind, checkfirst=True)
