"""Identity package: accounts, credentials, one-time tokens and OAuth."""
