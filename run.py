from tipkoro import create_app, db
import os

app = create_app()


@app.shell_context_processor
def make_shell_context():
    # Imported here to avoid a circular import
    from tipkoro.models import User, Subscription, Donation, Withdrawal

    return {'db': db, 'User': User, 'Subscription': Subscription,
            'Donation': Donation, 'Withdrawal': Withdrawal}


if __name__ == '__main__':
    with app.app_context():
        # Show database configuration
        print(f"Database: {app.config['SQLALCHEMY_DATABASE_URI']}")

        # Create tables
        db.create_all()
        print("Database created/updated")

    debug = os.environ.get('FLASK_DEBUG', 'False').lower() in ['true', '1', 'on']
    print(f"TipKoro running on http://localhost:5000 (debug={debug}, payment mode={app.config['PAYMENT_MODE']})")
    app.run(debug=debug, host='0.0.0.0', port=5000)
