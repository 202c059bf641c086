"""create users, clinics and profiles

Revision ID: 3f1c2a9d7b10
Revises:
Create Date: 2026-10-17 10:12:31.418227

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f1c2a9d7b10'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

role_enum = sa.Enum('SUPERADMIN', 'MANAGER', 'DOCTOR', 'USER', name='Role')
gender_enum = sa.Enum('MALE', 'FEMALE', name='Gender')


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('email', sa.String(length=250), nullable=False, unique=True),
        sa.Column('username', sa.String(length=150), unique=True),
        sa.Column('password', sa.String(length=255), nullable=False),
        sa.Column('is_verified', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('verification_token', sa.String(length=255)),
        sa.Column('role', role_enum, nullable=False, server_default='USER'),
        sa.Column('reset_password_token', sa.String(length=255)),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('deleted_at', sa.DateTime(timezone=True)),
    )
    op.create_index('users_id_index', 'users', ['id'])

    op.create_table(
        'clinics',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('phone', sa.String(length=50), nullable=False),
        sa.Column('address', sa.String(length=255)),
        sa.Column('manager', sa.String(length=100)),
        sa.Column('email', sa.String(length=100), unique=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('deleted_at', sa.DateTime(timezone=True)),
    )
    op.create_index('clinics_id_index', 'clinics', ['id'])

    op.create_table(
        'users_clinics',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column(
            'user_id', sa.Integer(),
            sa.ForeignKey('users.id', ondelete='RESTRICT', onupdate='CASCADE'),
            nullable=False,
        ),
        sa.Column(
            'clinic_id', sa.Integer(),
            sa.ForeignKey('clinics.id', ondelete='CASCADE', onupdate='CASCADE'),
            nullable=False,
        ),
        sa.UniqueConstraint('user_id', 'clinic_id', name='users_clinics_user_id_clinic_id_unique'),
    )
    op.create_index('users_clinics_user_id_index', 'users_clinics', ['user_id'])
    op.create_index('users_clinics_clinic_id_index', 'users_clinics', ['clinic_id'])

    op.create_table(
        'users_profiles',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('first_name', sa.String(length=50)),
        sa.Column('last_name', sa.String(length=50)),
        sa.Column('phone', sa.String(length=50)),
        sa.Column('birthday', sa.DateTime(timezone=True), nullable=False),
        sa.Column('social_id', sa.String(length=100), nullable=False),
        sa.Column('license', sa.String(length=255), unique=True),
        sa.Column('specialization', sa.String(length=150)),
        sa.Column('bio', sa.Text(), nullable=False),
        sa.Column('gender', gender_enum, nullable=False),
        sa.Column(
            'user_id', sa.Integer(),
            sa.ForeignKey('users.id', ondelete='CASCADE', onupdate='CASCADE'),
            nullable=False, unique=True,
        ),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('users_profiles_id_key', 'users_profiles', ['id'])


def downgrade() -> None:
    op.drop_index('users_profiles_id_key', table_name='users_profiles')
    op.drop_table('users_profiles')
    op.drop_index('users_clinics_clinic_id_index', table_name='users_clinics')
    op.drop_index('users_clinics_user_id_index', table_name='users_clinics')
    op.drop_table('users_clinics')
    op.drop_index('clinics_id_index', table_name='clinics')
    op.drop_table('clinics')
    op.drop_index('users_id_index', table_name='users')
    op.drop_table('users')
    gender_enum.drop(op.get_bind(), checkfirst=True)
    role_enum.drop(op.get_bind(), checkfirst=True)
