"""Create the locations table or adopt a legacy one

Earlier deployments created ``locations`` in several shapes: a ``name``
column instead of ``title``, text coordinates, NOT NULL on optional columns,
and images kept as base64 text or ``/uploads/...`` paths in an ``image``
column with a base64 ``thumbnail`` next to it. This revision brings any of
those onto the current schema once, so application code can assume a single
shape.

Revision ID: 0001
Revises:
"""

import base64
import binascii
import os

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision = '0001'
down_revision = None
branch_labels = None
depends_on = None

OPTIONAL_COLUMNS: dict[str, sa.types.TypeEngine] = {
    'description': sa.Text(),
    'date': sa.Text(),
    'highlight': sa.Text(),
    'country_code': sa.Text(),
    'image_path': sa.Text(),
    'image_data': sa.LargeBinary(),
    'image_type': sa.String(50),
    'thumbnail_data': sa.LargeBinary(),
    'created_at': sa.DateTime(),
}
LEGACY_IMAGE_COLUMNS = ('image', 'thumbnail')
BINARY_COLUMNS = ('image_data', 'thumbnail_data')

locations = sa.table(
    'locations',
    sa.column('id', sa.Integer),
    sa.column('image_path', sa.Text),
    sa.column('image_data', sa.LargeBinary),
    sa.column('image_type', sa.String),
    sa.column('thumbnail_data', sa.LargeBinary),
)


def _columns(bind: sa.Connection) -> dict[str, dict[str, object]]:
    return {
        column['name']: dict(column)
        for column in sa.inspect(bind).get_columns('locations')
    }


def _decode_base64(value: str) -> tuple[bytes, str | None] | None:
    """Decode a base64 string or data URI, returning bytes and MIME type."""
    mime_type = None
    if value.startswith('data:'):
        header, _, value = value.partition(',')
        mime_type = header[len('data:') :].split(';')[0] or None
    try:
        return base64.b64decode(value, validate=True), mime_type
    except (binascii.Error, ValueError):
        return None


def _is_path(value: str) -> bool:
    # '.' never occurs in a base64 payload
    return not value.startswith('data:') and '.' in value


def _sniff_type(data: bytes) -> str | None:
    if data.startswith(b'\x89PNG'):
        return 'image/png'
    if data.startswith(b'\xff\xd8'):
        return 'image/jpeg'
    return None


def _convert_text_image_columns(
    bind: sa.Connection, columns: dict[str, dict[str, object]]
) -> None:
    """Retype image_data and thumbnail_data from base64 text to binary.

    Some deployments added these columns as TEXT and copied the base64 image
    into them. Values are read out, the column is recreated as binary and the
    decoded bytes are written back. Undecodable values are dropped, except for
    ``/uploads/...`` paths in image_data, which move to image_path.
    """
    for name in BINARY_COLUMNS:
        if isinstance(columns[name]['type'], sa.LargeBinary):
            continue

        rows = bind.execute(
            sa.text(
                f'SELECT id, {name} AS value, image_path, image_type FROM locations '
                f'WHERE {name} IS NOT NULL'
            )
        ).mappings().all()

        with op.batch_alter_table('locations') as batch:
            batch.drop_column(name)
        with op.batch_alter_table('locations') as batch:
            batch.add_column(sa.Column(name, sa.LargeBinary(), nullable=True))

        for row in rows:
            values: dict[str, object] = {}
            value = row['value']
            if isinstance(value, bytes):
                values[name] = value
            elif (text := value.strip()) and _is_path(text):
                if name == 'image_data' and row['image_path'] is None:
                    values['image_path'] = os.path.basename(text)
            elif text:
                decoded = _decode_base64(text)
                if decoded is not None:
                    data, mime_type = decoded
                    values[name] = data
                    if name == 'image_data' and row['image_type'] is None:
                        values['image_type'] = mime_type or _sniff_type(data)

            values = {key: item for key, item in values.items() if item is not None}
            if values:
                bind.execute(
                    locations.update().where(locations.c.id == row['id']).values(**values)
                )


def _move_legacy_images(bind: sa.Connection, columns: dict[str, dict[str, object]]) -> None:
    legacy = [name for name in LEGACY_IMAGE_COLUMNS if name in columns]
    if not legacy:
        return

    rows = bind.execute(
        sa.text(
            f'SELECT id, {", ".join(legacy)} FROM locations '
            'WHERE image_data IS NULL AND image_path IS NULL'
        )
    ).mappings()
    for row in list(rows):
        values: dict[str, object] = {}

        image = (row.get('image') or '').strip()
        if image and _is_path(image):
            values['image_path'] = os.path.basename(image)
        elif image:
            decoded = _decode_base64(image)
            if decoded is not None:
                values['image_data'], mime_type = decoded
                if mime_type:
                    values['image_type'] = mime_type

        thumbnail = (row.get('thumbnail') or '').strip()
        if thumbnail:
            decoded = _decode_base64(thumbnail)
            if decoded is not None:
                values['thumbnail_data'] = decoded[0]

        if values:
            bind.execute(
                locations.update().where(locations.c.id == row['id']).values(**values)
            )


def _adopt_legacy_table(bind: sa.Connection) -> None:
    columns = _columns(bind)

    if 'title' not in columns and 'name' in columns:
        with op.batch_alter_table('locations') as batch:
            batch.alter_column(
                'name', new_column_name='title', existing_type=columns['name']['type']
            )
        columns = _columns(bind)

    missing = [name for name in ('title', *OPTIONAL_COLUMNS) if name not in columns]
    if missing:
        with op.batch_alter_table('locations') as batch:
            for name in missing:
                batch.add_column(
                    sa.Column(name, OPTIONAL_COLUMNS.get(name, sa.Text()), nullable=True)
                )
        columns = _columns(bind)

    if not all(isinstance(columns[name]['type'], sa.LargeBinary) for name in BINARY_COLUMNS):
        _convert_text_image_columns(bind, columns)
        columns = _columns(bind)

    _move_legacy_images(bind, columns)
    bind.execute(
        sa.text("UPDATE locations SET title = 'Unbenannt' WHERE title IS NULL")
    )
    bind.execute(
        sa.text(
            'UPDATE locations SET created_at = CURRENT_TIMESTAMP '
            'WHERE created_at IS NULL'
        )
    )
    bind.execute(
        sa.text(
            "UPDATE locations SET image_type = 'image/jpeg' WHERE image_type IS NULL "
            'AND (image_data IS NOT NULL OR image_path IS NOT NULL)'
        )
    )

    with op.batch_alter_table('locations') as batch:
        for name in OPTIONAL_COLUMNS:
            nullable = name != 'created_at'
            if bool(columns[name]['nullable']) != nullable:
                batch.alter_column(
                    name, existing_type=columns[name]['type'], nullable=nullable
                )
        for name in ('latitude', 'longitude'):
            if not isinstance(columns[name]['type'], sa.Float):
                batch.alter_column(
                    name,
                    existing_type=columns[name]['type'],
                    type_=sa.Float(),
                    postgresql_using=f'{name}::double precision',
                )
        for name in LEGACY_IMAGE_COLUMNS:
            if name in columns:
                batch.drop_column(name)


def upgrade() -> None:
    bind = op.get_bind()
    if sa.inspect(bind).has_table('locations'):
        _adopt_legacy_table(bind)
        return

    op.create_table(
        'locations',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('title', sa.Text(), nullable=False),
        sa.Column('latitude', sa.Float(), nullable=False),
        sa.Column('longitude', sa.Float(), nullable=False),
        *(
            sa.Column(name, type_, nullable=name != 'created_at')
            for name, type_ in OPTIONAL_COLUMNS.items()
        ),
    )


def downgrade() -> None:
    op.drop_table('locations')
