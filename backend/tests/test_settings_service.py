import os
import shutil
import tempfile
import unittest

from shopledger import create_app
from shopledger.extensions import db
from shopledger.models import Account, ActivityLogEntry, AppSettings, Customer
from shopledger.services import account_service, settings_service
from shopledger.services.settings_service import SettingsValidationError


class SettingsServiceTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.tmpdir = tempfile.mkdtemp()
        cls.app = create_app({
            "TESTING": True,
            "SQLALCHEMY_DATABASE_URI": f"sqlite:///{os.path.join(cls.tmpdir, 'settings-test.sqlite3')}",
            "SQLALCHEMY_TRACK_MODIFICATIONS": False,
            "DEFERRED_TASKS_EAGER": True,
            "TRANSACTION_RETRY_BACKOFF": 0,
        })
        cls.ctx = cls.app.app_context()
        cls.ctx.push()
        db.create_all()

    @classmethod
    def tearDownClass(cls):
        db.session.remove()
        db.drop_all()
        cls.ctx.pop()
        shutil.rmtree(cls.tmpdir, ignore_errors=True)

    def setUp(self):
        db.session.query(ActivityLogEntry).delete()
        db.session.query(Customer).delete()
        db.session.query(AppSettings).delete()
        db.session.query(Account).delete()
        db.session.commit()

        self.account = account_service.create_account("Settings Shop", "SET")
        self.account_id = self.account.id

    def test_account_gets_default_settings(self):
        settings = settings_service.get_settings(self.account_id)
        self.assertEqual(settings.currency, "PKR")
        self.assertEqual(settings.low_stock_threshold, 20)
        self.assertEqual(settings.walk_in_customer_name, "Walk-in Customer")
        self.assertEqual(settings.current_business_cash, 0.0)
        self.assertEqual(settings.auto_backup_frequency, "disabled")

    def test_claim_next_numeric_id_per_document_type(self):
        settings = settings_service.load_settings_for_update(self.account_id)
        self.assertEqual(settings_service.claim_next_numeric_id(settings, "sale"), 1)
        self.assertEqual(settings_service.claim_next_numeric_id(settings, "sale"), 2)
        self.assertEqual(settings_service.claim_next_numeric_id(settings, "return"), 1)
        db.session.commit()

        reloaded = settings_service.get_settings(self.account_id)
        self.assertEqual(reloaded.last_sale_numeric_id, 2)
        self.assertEqual(reloaded.last_purchase_numeric_id, 0)
        self.assertEqual(reloaded.last_return_numeric_id, 1)

    def test_unknown_document_type(self):
        settings = settings_service.load_settings_for_update(self.account_id)
        with self.assertRaises(ValueError):
            settings_service.claim_next_numeric_id(settings, "invoice")

    def test_update_rejects_counters_and_cash(self):
        with self.assertRaises(SettingsValidationError):
            settings_service.update_settings(self.account_id, None, {"last_sale_numeric_id": 99})
        with self.assertRaises(SettingsValidationError):
            settings_service.update_settings(self.account_id, None, {"current_business_cash": 1e6})
        self.assertEqual(settings_service.get_settings(self.account_id).last_sale_numeric_id, 0)

    def test_update_rejects_backup_config(self):
        with self.assertRaises(SettingsValidationError):
            settings_service.update_settings(self.account_id, None, {"auto_backup_frequency": "daily"})

    def test_absent_fields_carry_forward_from_snapshot(self):
        snapshot = settings_service.get_settings(self.account_id).to_dict()
        snapshot["company_display_name"] = "Corner Store"

        settings = settings_service.update_settings(self.account_id, snapshot, {"low_stock_threshold": 5})

        self.assertEqual(settings.low_stock_threshold, 5)
        self.assertEqual(settings.company_display_name, "Corner Store")
        self.assertEqual(settings.currency, "PKR")

    def test_invalid_values(self):
        for changes in (
            {"currency": "XYZ"},
            {"low_stock_threshold": -1},
            {"low_stock_threshold": "many"},
            {"walk_in_customer_name": "  "},
            {"known_categories": "Snacks"},
        ):
            with self.subTest(changes=changes):
                with self.assertRaises(SettingsValidationError):
                    settings_service.update_settings(self.account_id, None, changes)

    def test_shop_name_change_logs_activity(self):
        settings_service.update_settings(self.account_id, None, {"company_display_name": "Corner Store"})

        db.session.expire_all()
        entry = db.session.query(ActivityLogEntry).filter_by(
            account_id=self.account_id, type="SHOP_NAME_UPDATE"
        ).one()
        self.assertIn("Corner Store", entry.description)

    def test_noop_update_logs_nothing(self):
        settings_service.update_settings(self.account_id, None, {"currency": "PKR"})

        count = db.session.query(ActivityLogEntry).filter(
            ActivityLogEntry.account_id == self.account_id,
            ActivityLogEntry.type.in_(["SETTINGS_UPDATE", "SHOP_NAME_UPDATE"]),
        ).count()
        self.assertEqual(count, 0)

    def test_backup_config_writer(self):
        settings = settings_service.update_backup_config(self.account_id, auto_backup_frequency="weekly")
        self.assertEqual(settings.auto_backup_frequency, "weekly")
        self.assertEqual(settings.backup_config()["auto_backup_frequency"], "weekly")

        with self.assertRaises(SettingsValidationError):
            settings_service.update_backup_config(self.account_id, auto_backup_frequency="hourly")

    def test_adjust_business_cash(self):
        self.assertEqual(settings_service.adjust_business_cash(self.account_id, 12.345), 12.35)
        self.assertEqual(settings_service.adjust_business_cash(self.account_id, -2.35), 10.0)

    def test_reset_keeps_preferences(self):
        settings_service.update_settings(self.account_id, None, {"currency": "USD", "known_categories": ["Snacks"]})
        settings_service.adjust_business_cash(self.account_id, 50)
        settings = settings_service.load_settings_for_update(self.account_id)
        settings_service.claim_next_numeric_id(settings, "sale")

        settings_service.reset_settings(settings)
        db.session.commit()

        settings = settings_service.get_settings(self.account_id)
        self.assertEqual(settings.currency, "USD")
        self.assertEqual(settings.current_business_cash, 0.0)
        self.assertEqual(settings.last_sale_numeric_id, 0)
        self.assertEqual(settings.known_categories, [])


if __name__ == "__main__":
    unittest.main()
