"""Schema v1 - Initial database schema.

This version includes tables for:
- Namespaced collection entries (accounts, assets)
- The contract state record (schema version triple and counters)

Collection entries are keyed by a namespace derived from the collection name
and the contract's version salt, so a state reset orphans old rows instead of
deleting them.
"""

schema = {
    'version': 1,
    'tables': [
        {
            'name': 'collection_entries',
            'columns': [
                {'name': 'namespace', 'type': 'BYTEA', 'nullable': False},
                {'name': 'key', 'type': 'TEXT', 'nullable': False},
                {'name': 'value', 'type': 'JSONB', 'nullable': False},
                {'name': 'position', 'type': 'INT8', 'nullable': False},
                {'name': 'created_at', 'type': 'TIMESTAMP', 'nullable': False, 'default': 'now()'},
                {'name': 'updated_at', 'type': 'TIMESTAMP', 'nullable': False, 'default': 'now()'}
            ],
            'primary_key': ['namespace', 'key'],
            'indexes': [
                {'name': 'idx_collection_entries_position', 'columns': ['namespace', 'position']}
            ]
        },
        {
            'name': 'contract_state',
            'columns': [
                {'name': 'id', 'type': 'INT8', 'primary_key': True},
                {'name': 'value', 'type': 'JSONB', 'nullable': False},
                {'name': 'updated_at', 'type': 'TIMESTAMP', 'nullable': False, 'default': 'now()'}
            ]
        }
    ],
    'triggers': [
        {
            'name': 'trg_collection_entries_updated_at',
            'table': 'collection_entries',
            'timing': 'BEFORE',
            'event': 'UPDATE',
            'function_name': 'set_collection_entries_updated_at',
            'function_body': '''
                BEGIN
                    NEW.updated_at = now();
                    RETURN NEW;
                END;
            '''
        }
    ]
}
