from gallery_billing.core.log_config import configure_logging
from gallery_billing.db.session import SessionLocal
from gallery_billing.services.subscriptions import downgrade_expired_subscriptions


def main():
    configure_logging()
    db = SessionLocal()
    try:
        result = downgrade_expired_subscriptions(db, limit=500)
        db.commit()
        print(
            "ok: expired subscriptions downgraded "
            f"(checked={result['checked']}, downgraded={result['downgraded']})"
        )
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    main()
