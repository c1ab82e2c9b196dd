# Core package: config, errors, session, accounts
