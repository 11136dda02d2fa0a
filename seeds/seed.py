from backup_console.extensions import db
from seeds.setup_data import seed_backups, seed_schools


def main():
    try:
        db.drop_all()
        db.create_all()

        schools = seed_schools()
        backups = seed_backups(schools)

        print(f"Database seeded with {len(schools)} schools and {len(backups)} backups.")
    finally:
        db.remove_session()


if __name__ == '__main__':
    main()
